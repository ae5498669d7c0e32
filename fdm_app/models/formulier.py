# fdm_app/models/formulier.py
"""
Gedeelde helpers voor het inlezen van formulier-/JSON-invoer
en het teruggeven van database-rijen als JSON.
"""
from datetime import date, datetime

from flask import request


def formulier_data() -> dict:
    """JSON body als die er is, anders de gewone form-velden."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def safe_float(val, fallback=None):
    """Veilig naar float (komma mag als decimaalteken), anders fallback."""
    try:
        if val is None:
            return fallback
        s = str(val).strip().replace(",", ".")
        if s == "" or s.lower() in ("none", "nan"):
            return fallback
        return float(s)
    except (ValueError, TypeError):
        return fallback


def safe_int(val, fallback=None):
    try:
        s = str(val).strip()
        if val is None or s == "" or s.lower() in ("none", "nan"):
            return fallback
        # eerst naar float -> dan int, om 2025.0 ook goed te pakken
        return int(float(s))
    except (ValueError, TypeError):
        return fallback


def parse_bool(val) -> bool:
    if isinstance(val, bool):
        return val
    return str(val or "").strip().lower() in ("1", "true", "ja", "on", "yes")


def parse_datum(val):
    """
    Accepteert date/datetime, 'yyyy-mm-dd' en 'dd-mm-yyyy'.
    Leeg -> None, ongeldig -> ValueError.
    """
    if val is None or val == "":
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val

    s = str(val).strip()[:10]
    for fmt in ("%Y-%m-%d", "%d-%m-%Y"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Ongeldige datum: {val}")


def parse_tijdvak(args):
    """
    Tijdvak uit querystring: ?jaar=2025 of ?start=...&end=...
    Geeft (start, end) terug; zonder invoer het lopende jaar.
    """
    jaar = safe_int(args.get("jaar"))
    start = parse_datum(args.get("start"))
    end = parse_datum(args.get("end"))

    if start or end:
        if start and end and end < start:
            raise ValueError("Einddatum ligt voor de startdatum")
        return start, end

    if jaar is None:
        jaar = date.today().year
    return date(jaar, 1, 1), date(jaar, 12, 31)


def naar_json(obj):
    """Maak dicts/lijsten uit de database klaar voor jsonify (datums als ISO)."""
    if isinstance(obj, dict):
        return {k: naar_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [naar_json(v) for v in obj]
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    return obj
