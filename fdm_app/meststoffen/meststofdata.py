# fdm_app/meststoffen/meststofdata.py
"""
Meststoffencatalogus en de meststoffen die een bedrijf heeft aangeschaft (p_id).
"""
import json
import uuid

import fdm_app.models.database_beheer as db

MESTSTOF_TYPES = ("mineral", "manure", "compost", "other")

TOEDIENINGSMETHODEN = (
    "slotted coulter", "incorporation", "incorporation 2 tracks", "injection",
    "shallow injection", "spraying", "broadcasting", "spoke wheel",
    "pocket placement", "narrowband",
)

CATALOGUS_KOLOMMEN = (
    ("p_id_catalogue", "p_source", "p_name_nl", "p_type", "p_type_rvo")
    + db.MESTSTOF_GEHALTES
    + ("p_app_method_options",)
)


def _catalogus_naar_dict(row):
    d = dict(row)
    raw = d.get("p_app_method_options")
    d["p_app_method_options"] = json.loads(raw) if raw else None
    return d


def lijst_catalogus(c):
    c.execute("SELECT * FROM meststoffen_catalogus ORDER BY p_name_nl")
    return [_catalogus_naar_dict(r) for r in c.fetchall()]


def get_catalogus_item(c, p_id_catalogue):
    c.execute("SELECT * FROM meststoffen_catalogus WHERE p_id_catalogue=%s", (p_id_catalogue,))
    row = c.fetchone()
    return _catalogus_naar_dict(row) if row else None


def controleer_catalogus_item(item: dict):
    if not item.get("p_id_catalogue"):
        raise ValueError("p_id_catalogue ontbreekt")
    if not item.get("p_name_nl"):
        raise ValueError("p_name_nl ontbreekt")
    if item.get("p_type") and item["p_type"] not in MESTSTOF_TYPES:
        raise ValueError(f"Onbekend p_type: {item['p_type']}")
    for key in db.MESTSTOF_GEHALTES:
        waarde = item.get(key)
        if waarde is not None and waarde < 0:
            raise ValueError(f"{key} mag niet negatief zijn")
    for methode in item.get("p_app_method_options") or []:
        if methode not in TOEDIENINGSMETHODEN:
            raise ValueError(f"Onbekende toedieningsmethode: {methode}")


def upsert_catalogus_item(c, item: dict):
    """Voeg een catalogusitem toe of werk het bij (op p_id_catalogue)."""
    controleer_catalogus_item(item)
    waarden = dict(item)
    waarden.setdefault("p_source", "custom")
    opties = waarden.get("p_app_method_options")
    waarden["p_app_method_options"] = json.dumps(opties) if opties else None

    kolommen = ", ".join(CATALOGUS_KOLOMMEN)
    placeholders = ", ".join(["%s"] * len(CATALOGUS_KOLOMMEN))
    updates = ", ".join(f"{k} = EXCLUDED.{k}" for k in CATALOGUS_KOLOMMEN[1:])
    c.execute(
        f"""
        INSERT INTO meststoffen_catalogus ({kolommen})
        VALUES ({placeholders})
        ON CONFLICT (p_id_catalogue) DO UPDATE SET {updates}
        """,
        [waarden.get(k) for k in CATALOGUS_KOLOMMEN]
    )


# ---------------- Meststoffen van een bedrijf ----------------

MESTSTOF_SELECT = f"""
    SELECT m.id AS p_id, m.bedrijf_id AS b_id_farm, m.p_id_catalogue,
           m.p_acquiring_amount, m.p_acquiring_date,
           k.p_source, k.p_name_nl, k.p_type, k.p_type_rvo, k.p_app_method_options,
           {", ".join("k." + g for g in db.MESTSTOF_GEHALTES)}
    FROM bedrijf_meststoffen m
    JOIN meststoffen_catalogus k ON k.p_id_catalogue = m.p_id_catalogue
"""


def voeg_meststof_toe(c, bedrijf_id, p_id_catalogue, p_acquiring_amount=None, p_acquiring_date=None) -> str:
    if not get_catalogus_item(c, p_id_catalogue):
        raise ValueError("Meststof niet gevonden in de catalogus")
    if p_acquiring_amount is not None and p_acquiring_amount < 0:
        raise ValueError("Aangevoerde hoeveelheid mag niet negatief zijn")

    p_id = str(uuid.uuid4())
    c.execute(
        """
        INSERT INTO bedrijf_meststoffen (id, bedrijf_id, p_id_catalogue, p_acquiring_amount, p_acquiring_date)
        VALUES (%s, %s, %s, %s, %s)
        """,
        (p_id, bedrijf_id, p_id_catalogue, p_acquiring_amount, p_acquiring_date)
    )
    return p_id


def lijst_meststoffen(c, bedrijf_id):
    c.execute(MESTSTOF_SELECT + " WHERE m.bedrijf_id=%s ORDER BY k.p_name_nl", (bedrijf_id,))
    return [_catalogus_naar_dict(r) for r in c.fetchall()]


def get_meststof(c, p_id):
    c.execute(MESTSTOF_SELECT + " WHERE m.id=%s", (p_id,))
    row = c.fetchone()
    return _catalogus_naar_dict(row) if row else None
