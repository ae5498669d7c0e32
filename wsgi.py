# wsgi.py
from fdm_app import create_app

# Zorg dat app beschikbaar is voor gunicorn / render
app = create_app()
