from flask import Blueprint, request, jsonify, session
from io import BytesIO
import logging

import pandas as pd
import psycopg2

import fdm_app.models.database_beheer as db
from fdm_app.models.formulier import formulier_data, parse_bool, safe_float
from fdm_app.gebruikers.auth_utils import is_admin
from fdm_app.meststoffen import meststofdata
from fdm_app.teelten import teeltplan

universele_data_bp = Blueprint(
    'universele_data',
    __name__,
    url_prefix='/universele_data'
)

logger = logging.getLogger(__name__)

# Per catalogus: verplichte, numerieke, lijst- (komma-gescheiden) en ja/nee-kolommen
CATALOGI = {
    "meststoffen": {
        "verplicht": ("p_id_catalogue", "p_name_nl", "p_type"),
        "numeriek": db.MESTSTOF_GEHALTES,
        "lijsten": ("p_app_method_options",),
        "booleans": (),
        "kolommen": meststofdata.CATALOGUS_KOLOMMEN,
        "upsert": meststofdata.upsert_catalogus_item,
        "lijst": meststofdata.lijst_catalogus,
    },
    "gewassen": {
        "verplicht": ("b_lu_catalogue", "b_lu_name", "b_lu_croprotation"),
        "numeriek": db.GEWAS_GETALLEN,
        "lijsten": ("b_lu_variety_options",),
        "booleans": ("b_lu_rest_oravib",),
        "kolommen": teeltplan.CATALOGUS_KOLOMMEN,
        "upsert": teeltplan.upsert_catalogus_item,
        "lijst": teeltplan.lijst_catalogus,
    },
}


def read_uploaded_spreadsheet(upload_file):
    """
    Leest een geüpload Excel/ODS-bestand in als DataFrame.
    Ondersteunt .xlsx, .xls en .ods.
    Gooit een ValueError bij een niet-ondersteunde extensie.
    """
    filename = (upload_file.filename or "").lower()
    content = upload_file.read()

    if filename.endswith('.ods'):
        return pd.read_excel(BytesIO(content), engine="odf")
    elif filename.endswith('.xlsx') or filename.endswith('.xls'):
        return pd.read_excel(BytesIO(content))
    else:
        raise ValueError("Bestandstype niet ondersteund. Gebruik .xlsx, .xls of .ods.")


def to_float_safe(value, default=None):
    try:
        s = str(value).strip().replace(",", ".")
        if s == "" or s.lower() == "nan":
            return default
        return float(s)
    except ValueError:
        return default


def _tekst(value):
    if value is None or pd.isna(value):
        return None
    # Codes als 14 komen uit Excel vaak terug als 14.0
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip() or None


def spreadsheet_naar_items(df, catalogus: str):
    """
    DataFrame -> [(excel-rij, item)]. Kolomnamen zijn de veldnamen uit de
    catalogus; onbekende kolommen worden genegeerd.
    """
    instellingen = CATALOGI[catalogus]
    missing = [col for col in instellingen["verplicht"] if col not in df.columns]
    if missing:
        raise ValueError(f"Kolommen ontbreken in Excel: {', '.join(missing)}")

    df = df.dropna(how="all")
    items = []
    # Rij 1 is de kopregel
    for row_idx, (_, row) in enumerate(df.iterrows(), start=2):
        item = {}
        for col in instellingen["kolommen"]:
            if col not in df.columns:
                continue
            if col in instellingen["numeriek"]:
                item[col] = to_float_safe(row[col])
            elif col in instellingen["booleans"]:
                item[col] = parse_bool(_tekst(row[col])) or bool(to_float_safe(row[col], 0))
            elif col in instellingen["lijsten"]:
                tekst = _tekst(row[col])
                item[col] = [d.strip() for d in tekst.split(",") if d.strip()] if tekst else None
            else:
                item[col] = _tekst(row[col])
        items.append((row_idx, item))
    return items


@universele_data_bp.before_request
def restrict_universele_data_bp():
    if 'user_id' not in session:
        return jsonify({"success": False, "message": "Log eerst in om verder te gaan."}), 401
    if not is_admin():
        return jsonify({"success": False, "message": "Geen toegang!"}), 403


@universele_data_bp.route('/<catalogus>', methods=['GET', 'POST'])
def catalogus_items(catalogus):
    instellingen = CATALOGI.get(catalogus)
    if instellingen is None:
        return jsonify({"success": False, "message": f"Onbekende catalogus: {catalogus}"}), 404

    conn, c = db.get_dict_cursor()
    try:
        if request.method == 'POST':
            data = formulier_data()
            item = {k: data.get(k) for k in instellingen["kolommen"] if k in data}
            for k in instellingen["numeriek"]:
                if k in item:
                    item[k] = safe_float(item[k])
            try:
                instellingen["upsert"](c, item)
            except ValueError as e:
                return jsonify({"success": False, "message": str(e)}), 400
            conn.commit()
            return jsonify({"success": True, "message": "Catalogusitem opgeslagen."}), 201

        return jsonify(instellingen["lijst"](c))
    finally:
        conn.close()


@universele_data_bp.route('/<catalogus>/import', methods=['POST'])
def catalogus_import(catalogus):
    """Alles of niets: bij een foute rij wordt de hele import teruggedraaid."""
    instellingen = CATALOGI.get(catalogus)
    if instellingen is None:
        return jsonify({"success": False, "message": f"Onbekende catalogus: {catalogus}"}), 404

    file = request.files.get('excel_file')
    if not file or file.filename == '':
        return jsonify({"success": False, "message": "Geen bestand gekozen."}), 400

    try:
        items = spreadsheet_naar_items(read_uploaded_spreadsheet(file), catalogus)
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    conn, c = db.get_dict_cursor()
    last_excel_row = None
    try:
        for row_idx, item in items:
            last_excel_row = row_idx
            instellingen["upsert"](c, item)
        conn.commit()
    except (ValueError, psycopg2.Error) as e:
        conn.rollback()
        logger.warning(f"Import {catalogus} mislukt bij Excel-rij {last_excel_row}: {e}")
        return jsonify({
            "success": False,
            "message": f"Import {catalogus} mislukt bij Excel-rij {last_excel_row}: {e}",
            "row": last_excel_row,
        }), 400
    finally:
        conn.close()

    logger.info(f"Catalogus {catalogus}: {len(items)} rijen geïmporteerd")
    return jsonify({"success": True, "message": f"{catalogus.capitalize()} geïmporteerd ({len(items)} rijen)."})
