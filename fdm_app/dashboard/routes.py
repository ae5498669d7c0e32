from flask import Blueprint, request, jsonify
from datetime import date
import logging

import fdm_app.models.database_beheer as db
from fdm_app.models.formulier import safe_int, naar_json
from fdm_app.dashboard.dashboard_stats import bedrijf_stats, perceel_feature, totaal_stats
from fdm_app.gebruikers.auth_utils import login_required, effective_user_id
from fdm_app.gebruiksnormen.bedrijfsniveau import bereken_bedrijf
from fdm_app.gebruiksnormen.invoer import invoer_voor_bedrijf

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint(
    'dashboard',
    __name__,
    url_prefix='/dashboard'
)


def _jaar_of_fout():
    jaar = safe_int(request.args.get('jaar'), date.today().year)
    if jaar < 2020 or jaar > 2030:
        return None
    return jaar


def _bedrijven_met_normen(user_id, jaar):
    """[(bedrijf, invoeren, resultaat)] voor alle bedrijven van de gebruiker."""
    conn, c = db.get_dict_cursor()
    try:
        c.execute("SELECT id, naam FROM bedrijven WHERE user_id = %s ORDER BY naam", (user_id,))
        bedrijven = c.fetchall()
        uit = []
        for bedrijf in bedrijven:
            invoeren = invoer_voor_bedrijf(c, bedrijf["id"], jaar)
            uit.append((bedrijf, invoeren, bereken_bedrijf(invoeren)))
        return uit
    finally:
        conn.close()


@dashboard_bp.route('/stats', methods=['GET'])
@login_required
def get_dashboard_stats():
    """Samenvatting per bedrijf en in totaal voor één jaar."""
    jaar = _jaar_of_fout()
    if jaar is None:
        return jsonify({"success": False, "message": "Ongeldig jaar (2020-2030)"}), 400

    stats = [
        bedrijf_stats(bedrijf, invoeren, resultaat, jaar)
        for bedrijf, invoeren, resultaat in _bedrijven_met_normen(effective_user_id(), jaar)
    ]
    return jsonify(naar_json({"jaar": jaar, "bedrijf_stats": stats, "totaal_stats": totaal_stats(stats)}))


@dashboard_bp.route('/kaart', methods=['GET'])
@dashboard_bp.route('/api/map/percelen', methods=['GET'])
@login_required
def api_map_percelen():
    """Percelen als GeoJSON FeatureCollection met norm en opvulling per perceel."""
    jaar = _jaar_of_fout()
    if jaar is None:
        return jsonify({'type': 'FeatureCollection', 'features': [], 'error': 'Ongeldig jaar'}), 400

    features = []
    for bedrijf, invoeren, resultaat in _bedrijven_met_normen(effective_user_id(), jaar):
        per_perceel = {r["b_id"]: r for r in resultaat["fields"]}
        for invoer in invoeren:
            feature = perceel_feature(invoer, per_perceel.get(invoer["perceel"]["b_id"]), bedrijf["naam"], jaar)
            if feature:
                features.append(feature)

    logger.info(f"Returning {len(features)} features (jaar={jaar})")
    return jsonify(naar_json({'type': 'FeatureCollection', 'features': features}))
