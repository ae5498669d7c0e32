# fdm_app/teelten/teeltplan.py
"""
Teelten (b_lu) en oogsten op percelen, plus de gewascatalogus.
Pure regels (standaarddatums, oogstdatum-controle) staan los van de
database-functies zodat ze zonder database te testen zijn.
"""
import json
import uuid
from datetime import date

OOGSTBAARHEID = ("none", "once", "multiple")

GEWASROTATIES = (
    "other", "clover", "nature", "potato", "grass", "rapeseed",
    "starch", "maize", "cereal", "sugarbeet", "alfalfa", "catchcrop",
)


# ---------------- Pure regels ----------------

def bereken_standaard_datums(catalogus_item: dict, jaar: int):
    """
    Standaard zaai- en einddatum van een gewas in een jaar.
    Zonder standaard: 15 maart t/m 15 september. Ligt het einde voor de
    start, dan is er in het vorige jaar gezaaid. Alleen gewassen die één
    keer geoogst worden krijgen een einddatum.
    """
    if not isinstance(jaar, int) or jaar < 1970 or jaar >= 2100:
        raise ValueError("Ongeldig jaar")

    start_mmdd = catalogus_item.get("b_lu_start_default") or "03-15"
    eind_mmdd = catalogus_item.get("b_date_harvest_default") or "09-15"
    sm, sd = (int(x) for x in start_mmdd.split("-"))
    em, ed = (int(x) for x in eind_mmdd.split("-"))

    start = date(jaar, sm, sd)
    eind = date(jaar, em, ed)
    if eind <= start:
        start = date(jaar - 1, sm, sd)

    if catalogus_item.get("b_lu_harvestable") != "once":
        eind = None
    return start, eind


def controleer_teeltdatums(start, eind):
    if start is None:
        raise ValueError("Zaaidatum (b_lu_start) is verplicht")
    if eind is not None and eind <= start:
        raise ValueError("Einddatum moet na de zaaidatum liggen")


def controleer_oogstdatum(oogstbaarheid, b_lu_start, b_lu_end, oogstdatum, aantal_oogsten=0):
    """
    Controleert of een oogst op deze datum mag. Geeft de oogstbaarheid terug.
    - none: nooit
    - once: maximaal één oogst, op de einddatum als die er is
    - multiple: niet na de einddatum
    """
    if oogstdatum is None:
        raise ValueError("Oogstdatum (b_lu_harvest_date) ontbreekt")
    if oogstbaarheid not in OOGSTBAARHEID:
        raise ValueError(f"Onbekende oogstbaarheid: {oogstbaarheid}")
    if oogstbaarheid == "none":
        raise ValueError("Dit gewas kan niet geoogst worden")
    if b_lu_start is None:
        raise ValueError("Zaaidatum ontbreekt")
    if oogstdatum < b_lu_start:
        raise ValueError("Oogstdatum moet op of na de zaaidatum liggen")

    if oogstbaarheid == "once":
        if aantal_oogsten > 0:
            raise ValueError("Dit gewas kan maar één keer geoogst worden")
        if b_lu_end is not None and oogstdatum != b_lu_end:
            raise ValueError("Oogstdatum moet gelijk zijn aan de einddatum van deze teelt")

    if oogstbaarheid == "multiple" and b_lu_end is not None and oogstdatum > b_lu_end:
        raise ValueError("Oogstdatum moet voor de einddatum van deze teelt liggen")

    return oogstbaarheid


# ---------------- Catalogus ----------------

def catalogus_bestaat(c, b_lu_catalogue) -> bool:
    c.execute("SELECT 1 FROM gewassen_catalogus WHERE b_lu_catalogue=%s", (b_lu_catalogue,))
    return c.fetchone() is not None


def get_catalogus_item(c, b_lu_catalogue):
    c.execute("SELECT * FROM gewassen_catalogus WHERE b_lu_catalogue=%s", (b_lu_catalogue,))
    row = c.fetchone()
    return _catalogus_naar_dict(row) if row else None


def lijst_catalogus(c):
    c.execute("SELECT * FROM gewassen_catalogus ORDER BY b_lu_name")
    return [_catalogus_naar_dict(r) for r in c.fetchall()]


def _catalogus_naar_dict(row):
    d = dict(row)
    raw = d.get("b_lu_variety_options")
    d["b_lu_variety_options"] = json.loads(raw) if raw else None
    d["b_lu_rest_oravib"] = bool(d.get("b_lu_rest_oravib"))
    return d


CATALOGUS_KOLOMMEN = (
    "b_lu_catalogue", "b_lu_source", "b_lu_name", "b_lu_name_en", "b_lu_harvestable",
    "b_lu_hcat3", "b_lu_hcat3_name", "b_lu_croprotation",
    "b_lu_yield", "b_lu_hi", "b_lu_n_harvestable", "b_lu_n_residue",
    "b_n_fixation", "b_lu_eom", "b_lu_eom_residues",
    "b_lu_rest_oravib", "b_lu_variety_options", "b_lu_start_default", "b_date_harvest_default",
)


def controleer_catalogus_item(item: dict):
    if not item.get("b_lu_catalogue"):
        raise ValueError("b_lu_catalogue ontbreekt")
    if not item.get("b_lu_name"):
        raise ValueError("b_lu_name ontbreekt")
    if (item.get("b_lu_harvestable") or "once") not in OOGSTBAARHEID:
        raise ValueError(f"Onbekende oogstbaarheid: {item['b_lu_harvestable']}")
    if item.get("b_lu_croprotation") and item["b_lu_croprotation"] not in GEWASROTATIES:
        raise ValueError(f"Onbekende gewasrotatie: {item['b_lu_croprotation']}")
    for key in ("b_lu_yield", "b_lu_n_harvestable", "b_lu_n_residue", "b_n_fixation"):
        if item.get(key) is not None and item[key] < 0:
            raise ValueError(f"{key} mag niet negatief zijn")
    if item.get("b_lu_hi") is not None and not 0 <= item["b_lu_hi"] <= 1:
        raise ValueError("b_lu_hi moet tussen 0 en 1 liggen")


def upsert_catalogus_item(c, item: dict):
    """Voeg een gewas toe aan de catalogus of werk het bij (op b_lu_catalogue)."""
    controleer_catalogus_item(item)
    waarden = dict(item)
    waarden.setdefault("b_lu_source", "custom")
    waarden["b_lu_harvestable"] = waarden.get("b_lu_harvestable") or "once"
    waarden["b_lu_rest_oravib"] = 1 if waarden.get("b_lu_rest_oravib") else 0
    opties = waarden.get("b_lu_variety_options")
    waarden["b_lu_variety_options"] = json.dumps(opties) if opties else None

    kolommen = ", ".join(CATALOGUS_KOLOMMEN)
    placeholders = ", ".join(["%s"] * len(CATALOGUS_KOLOMMEN))
    updates = ", ".join(f"{k} = EXCLUDED.{k}" for k in CATALOGUS_KOLOMMEN[1:])
    c.execute(
        f"""
        INSERT INTO gewassen_catalogus ({kolommen})
        VALUES ({placeholders})
        ON CONFLICT (b_lu_catalogue) DO UPDATE SET {updates}
        """,
        [waarden.get(k) for k in CATALOGUS_KOLOMMEN]
    )


def standaard_datums(c, b_lu_catalogue, jaar: int):
    item = get_catalogus_item(c, b_lu_catalogue)
    if not item:
        raise ValueError("Gewas niet gevonden in de catalogus")
    return bereken_standaard_datums(item, jaar)


# ---------------- Teelten ----------------

TEELT_SELECT = """
    SELECT t.id AS b_lu, t.perceel_id AS b_id, t.b_lu_catalogue,
           t.b_lu_start, t.b_lu_end, t.m_cropresidue, t.b_lu_variety,
           g.b_lu_name, g.b_lu_croprotation, g.b_lu_harvestable
    FROM teelten t
    JOIN gewassen_catalogus g ON g.b_lu_catalogue = t.b_lu_catalogue
"""


def _teelt_naar_dict(row):
    d = dict(row)
    if d.get("m_cropresidue") is not None:
        d["m_cropresidue"] = bool(d["m_cropresidue"])
    return d


def voeg_teelt_toe(c, perceel_id, b_lu_catalogue, b_lu_start, b_lu_end=None,
                   m_cropresidue=None, b_lu_variety=None) -> str:
    controleer_teeltdatums(b_lu_start, b_lu_end)

    item = get_catalogus_item(c, b_lu_catalogue)
    if not item:
        raise ValueError("Gewas niet gevonden in de catalogus")

    opties = item.get("b_lu_variety_options")
    if b_lu_variety and opties and b_lu_variety not in opties:
        raise ValueError(f"Ras '{b_lu_variety}' is geen optie voor dit gewas")

    b_lu = str(uuid.uuid4())
    c.execute(
        """
        INSERT INTO teelten (id, perceel_id, b_lu_catalogue, b_lu_start, b_lu_end, m_cropresidue, b_lu_variety)
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        """,
        (b_lu, perceel_id, b_lu_catalogue, b_lu_start, b_lu_end,
         None if m_cropresidue is None else int(bool(m_cropresidue)), b_lu_variety)
    )
    return b_lu


def get_teelt(c, b_lu):
    c.execute(TEELT_SELECT + " WHERE t.id = %s", (b_lu,))
    row = c.fetchone()
    return _teelt_naar_dict(row) if row else None


def lijst_teelten(c, perceel_id, start=None, end=None):
    """Teelten die (een deel van) het tijdvak op het perceel staan."""
    q = TEELT_SELECT + " WHERE t.perceel_id = %s"
    params = [perceel_id]
    if end is not None:
        q += " AND t.b_lu_start <= %s"
        params.append(end)
    if start is not None:
        q += " AND (t.b_lu_end IS NULL OR t.b_lu_end >= %s)"
        params.append(start)
    q += " ORDER BY t.b_lu_start"
    c.execute(q, params)
    return [_teelt_naar_dict(r) for r in c.fetchall()]


def werk_teelt_bij(c, b_lu, updates: dict):
    huidig = get_teelt(c, b_lu)
    if not huidig:
        raise ValueError("Teelt bestaat niet")

    start = updates.get("b_lu_start", huidig["b_lu_start"])
    eind = updates.get("b_lu_end", huidig["b_lu_end"])
    controleer_teeltdatums(start, eind)

    if "b_lu_catalogue" in updates and not catalogus_bestaat(c, updates["b_lu_catalogue"]):
        raise ValueError("Gewas niet gevonden in de catalogus")

    # Bestaande oogsten moeten passen bij de nieuwe einddatum
    if "b_lu_end" in updates and eind is not None:
        c.execute("SELECT MAX(b_lu_harvest_date) AS laatste FROM oogsten WHERE teelt_id=%s", (b_lu,))
        laatste = c.fetchone()
        if laatste and laatste["laatste"] and laatste["laatste"] > eind:
            raise ValueError("Er zijn oogsten na de nieuwe einddatum")

    if "m_cropresidue" in updates and updates["m_cropresidue"] is not None:
        updates["m_cropresidue"] = int(bool(updates["m_cropresidue"]))

    set_clause = ", ".join(f"{col} = %s" for col in updates)
    c.execute(f"UPDATE teelten SET {set_clause} WHERE id = %s", list(updates.values()) + [b_lu])


def teeltplan_bedrijf(c, bedrijf_id, start, end):
    """
    Teelten van alle percelen van een bedrijf, gegroepeerd per gewas:
    [{b_lu_catalogue, b_lu_name, b_lu_croprotation, b_area, fields: [...]}]
    """
    c.execute(
        """
        SELECT t.id AS b_lu, t.perceel_id AS b_id, t.b_lu_catalogue,
               t.b_lu_start, t.b_lu_end, t.m_cropresidue,
               g.b_lu_name, g.b_lu_croprotation,
               p.perceelnaam AS b_name, p.oppervlakte AS b_area
        FROM teelten t
        JOIN gewassen_catalogus g ON g.b_lu_catalogue = t.b_lu_catalogue
        JOIN percelen p ON p.id = t.perceel_id
        WHERE p.bedrijf_id = %s
          AND t.b_lu_start <= %s
          AND (t.b_lu_end IS NULL OR t.b_lu_end >= %s)
        ORDER BY g.b_lu_name, p.perceelnaam
        """,
        (bedrijf_id, end, start)
    )

    plan = {}
    for r in c.fetchall():
        r = _teelt_naar_dict(r)
        groep = plan.setdefault(r["b_lu_catalogue"], {
            "b_lu_catalogue": r["b_lu_catalogue"],
            "b_lu_name": r["b_lu_name"],
            "b_lu_croprotation": r["b_lu_croprotation"],
            "b_area": 0.0,
            "fields": [],
        })
        groep["b_area"] += float(r["b_area"] or 0)
        groep["fields"].append({
            "b_lu": r["b_lu"],
            "b_id": r["b_id"],
            "b_name": r["b_name"],
            "b_area": r["b_area"],
            "b_lu_start": r["b_lu_start"],
            "b_lu_end": r["b_lu_end"],
            "m_cropresidue": r["m_cropresidue"],
        })

    for groep in plan.values():
        groep["b_area"] = round(groep["b_area"], 4)
    return list(plan.values())


# ---------------- Oogsten ----------------

OOGST_SELECT = """
    SELECT o.id AS b_id_harvesting, o.teelt_id AS b_lu, o.b_lu_harvest_date,
           o.b_lu_yield, o.b_lu_n_harvestable
    FROM oogsten o
"""


def voeg_oogst_toe(c, b_lu, b_lu_harvest_date, b_lu_yield=None, b_lu_n_harvestable=None) -> str:
    teelt = get_teelt(c, b_lu)
    if not teelt:
        raise ValueError("Teelt bestaat niet")
    if b_lu_yield is not None and b_lu_yield < 0:
        raise ValueError("Opbrengst mag niet negatief zijn")

    c.execute("SELECT COUNT(*) AS n FROM oogsten WHERE teelt_id=%s", (b_lu,))
    aantal = int(c.fetchone()["n"])

    oogstbaarheid = controleer_oogstdatum(
        teelt["b_lu_harvestable"], teelt["b_lu_start"], teelt["b_lu_end"],
        b_lu_harvest_date, aantal
    )

    oogst_id = str(uuid.uuid4())
    c.execute(
        """
        INSERT INTO oogsten (id, teelt_id, b_lu_harvest_date, b_lu_yield, b_lu_n_harvestable)
        VALUES (%s, %s, %s, %s, %s)
        """,
        (oogst_id, b_lu, b_lu_harvest_date, b_lu_yield, b_lu_n_harvestable)
    )

    # Eenmalige oogst beëindigt de teelt
    if oogstbaarheid == "once":
        c.execute("UPDATE teelten SET b_lu_end=%s WHERE id=%s", (b_lu_harvest_date, b_lu))
    return oogst_id


def get_oogst(c, oogst_id):
    c.execute(OOGST_SELECT + " WHERE o.id = %s", (oogst_id,))
    return c.fetchone()


def lijst_oogsten(c, b_lu):
    c.execute(OOGST_SELECT + " WHERE o.teelt_id = %s ORDER BY o.b_lu_harvest_date", (b_lu,))
    return c.fetchall()


def werk_oogst_bij(c, oogst_id, b_lu_harvest_date, b_lu_yield=None, b_lu_n_harvestable=None):
    oogst = get_oogst(c, oogst_id)
    if not oogst:
        raise ValueError("Oogst bestaat niet")
    teelt = get_teelt(c, oogst["b_lu"])

    # De oogst zelf telt niet mee als bestaande oogst
    oogstbaarheid = teelt["b_lu_harvestable"]
    eind = None if oogstbaarheid == "once" else teelt["b_lu_end"]
    controleer_oogstdatum(oogstbaarheid, teelt["b_lu_start"], eind, b_lu_harvest_date, 0)

    c.execute(
        """
        UPDATE oogsten SET b_lu_harvest_date=%s, b_lu_yield=%s, b_lu_n_harvestable=%s
        WHERE id=%s
        """,
        (b_lu_harvest_date, b_lu_yield, b_lu_n_harvestable, oogst_id)
    )
    if oogstbaarheid == "once":
        c.execute("UPDATE teelten SET b_lu_end=%s WHERE id=%s", (b_lu_harvest_date, oogst["b_lu"]))


def verwijder_oogst(c, oogst_id, b_lu):
    c.execute("DELETE FROM oogsten WHERE id=%s", (oogst_id,))
    teelt = get_teelt(c, b_lu)
    # Zonder oogst heeft een eenmalig geoogste teelt geen einddatum meer
    if teelt and teelt["b_lu_harvestable"] == "once":
        c.execute("UPDATE teelten SET b_lu_end=NULL WHERE id=%s", (b_lu,))
