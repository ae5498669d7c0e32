# fdm_app/bemestingen/bemestingdata.py
"""
Bemestingen (p_app_id): toediening van een bedrijfsmeststof op een perceel.
Elke rij bevat ook de gehaltes uit de catalogus, zodat de normen en
balansen direct met een bemesting kunnen rekenen.
"""
import uuid

import fdm_app.models.database_beheer as db
from fdm_app.meststoffen.meststofdata import TOEDIENINGSMETHODEN, get_meststof

BEMESTING_SELECT = f"""
    SELECT a.id AS p_app_id, a.perceel_id AS b_id, a.meststof_id AS p_id,
           a.p_app_amount, a.p_app_method, a.p_app_date,
           m.p_id_catalogue, k.p_name_nl, k.p_type, k.p_type_rvo,
           {", ".join("k." + g for g in db.MESTSTOF_GEHALTES)}
    FROM bemestingen a
    JOIN bedrijf_meststoffen m ON m.id = a.meststof_id
    JOIN meststoffen_catalogus k ON k.p_id_catalogue = m.p_id_catalogue
"""


def controleer_bemesting(p_app_amount, p_app_method, p_app_date, methode_opties=None):
    if p_app_amount is None:
        raise ValueError("Hoeveelheid (p_app_amount) is verplicht")
    if p_app_amount < 0:
        raise ValueError("Hoeveelheid mag niet negatief zijn")
    if p_app_date is None:
        raise ValueError("Datum (p_app_date) is verplicht")
    if p_app_method is not None:
        if p_app_method not in TOEDIENINGSMETHODEN:
            raise ValueError(f"Onbekende toedieningsmethode: {p_app_method}")
        if methode_opties and p_app_method not in methode_opties:
            raise ValueError(f"Toedieningsmethode '{p_app_method}' past niet bij deze meststof")


def _meststof_voor_perceel(c, perceel_id, p_id):
    """De meststof moet van hetzelfde bedrijf zijn als het perceel."""
    meststof = get_meststof(c, p_id)
    if not meststof:
        raise ValueError("Meststof bestaat niet")
    c.execute("SELECT bedrijf_id FROM percelen WHERE id=%s", (perceel_id,))
    perceel = c.fetchone()
    if not perceel or perceel["bedrijf_id"] != meststof["b_id_farm"]:
        raise ValueError("Meststof hoort niet bij het bedrijf van dit perceel")
    return meststof


def voeg_bemesting_toe(c, perceel_id, p_id, p_app_amount, p_app_method, p_app_date) -> str:
    meststof = _meststof_voor_perceel(c, perceel_id, p_id)
    controleer_bemesting(p_app_amount, p_app_method, p_app_date, meststof.get("p_app_method_options"))

    p_app_id = str(uuid.uuid4())
    c.execute(
        """
        INSERT INTO bemestingen (id, perceel_id, meststof_id, p_app_amount, p_app_method, p_app_date)
        VALUES (%s, %s, %s, %s, %s, %s)
        """,
        (p_app_id, perceel_id, p_id, p_app_amount, p_app_method, p_app_date)
    )
    return p_app_id


def get_bemesting(c, p_app_id):
    c.execute(BEMESTING_SELECT + " WHERE a.id=%s", (p_app_id,))
    return c.fetchone()


def lijst_bemestingen(c, perceel_id, start=None, end=None):
    q = BEMESTING_SELECT + " WHERE a.perceel_id=%s"
    params = [perceel_id]
    if start is not None:
        q += " AND a.p_app_date >= %s"
        params.append(start)
    if end is not None:
        q += " AND a.p_app_date <= %s"
        params.append(end)
    q += " ORDER BY a.p_app_date, a.id"
    c.execute(q, params)
    return c.fetchall()


def werk_bemesting_bij(c, p_app_id, p_id, p_app_amount, p_app_method, p_app_date):
    huidig = get_bemesting(c, p_app_id)
    if not huidig:
        raise ValueError("Bemesting bestaat niet")
    meststof = _meststof_voor_perceel(c, huidig["b_id"], p_id or huidig["p_id"])
    controleer_bemesting(p_app_amount, p_app_method, p_app_date, meststof.get("p_app_method_options"))

    c.execute(
        """
        UPDATE bemestingen
        SET meststof_id=%s, p_app_amount=%s, p_app_method=%s, p_app_date=%s
        WHERE id=%s
        """,
        (meststof["p_id"], p_app_amount, p_app_method, p_app_date, p_app_id)
    )
