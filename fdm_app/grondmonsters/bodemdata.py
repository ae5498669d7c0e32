# fdm_app/grondmonsters/bodemdata.py
"""
Grondmonsters (a_id) per perceel en de 'huidige' bodemdata: per parameter
de meest recente waarde die bekend is.
"""
import uuid
from datetime import date

import fdm_app.models.database_beheer as db
from fdm_app.grondmonsters.conversies import (
    bereken_dichtheid, bereken_organische_koolstof, bereken_organische_stof
)

BRONNEN = (
    "nl-rva-l122", "nl-rva-l136", "nl-rva-l264", "nl-rva-l320", "nl-rva-l335",
    "nl-rva-l610", "nl-rva-l648", "nl-rva-l697", "nl-other-nmi", "other",
)

GRONDSOORTEN = (
    "moerige_klei", "rivierklei", "dekzand", "zeeklei", "dalgrond",
    "veen", "loess", "duinzand", "maasklei",
)

GWL_KLASSEN = (
    "II", "IV", "IIIb", "V", "VI", "VII", "Vb", "-", "Va", "III", "VIII",
    "sVI", "I", "IIb", "sVII", "IVu", "bVII", "sV", "sVb", "bVI", "IIIa",
    "VIIo", "VIId", "Vao", "Vad",
)

MONSTER_KOLOMMEN = ("a_source", "a_date", "b_sampling_date", "a_depth_upper", "a_depth_lower") + db.BODEM_PARAMETERS

GRONDMONSTER_SELECT = f"""
    SELECT id AS a_id, perceel_id AS b_id,
           {", ".join(MONSTER_KOLOMMEN)}
    FROM grondmonsters
"""


def controleer_grondmonster(data: dict):
    bron = data.get("a_source") or "other"
    if bron not in BRONNEN:
        raise ValueError(f"Onbekende bron (a_source): {bron}")

    boven = data.get("a_depth_upper") or 0
    onder = data.get("a_depth_lower")
    if boven < 0:
        raise ValueError("a_depth_upper mag niet negatief zijn")
    if onder is not None and onder <= boven:
        raise ValueError("a_depth_lower must be greater than a_depth_upper")

    grondsoort = data.get("b_soiltype_agr")
    if grondsoort and grondsoort not in GRONDSOORTEN:
        raise ValueError(f"Onbekende grondsoort: {grondsoort}")
    gwl = data.get("b_gwl_class")
    if gwl and gwl not in GWL_KLASSEN:
        raise ValueError(f"Onbekende grondwatertrap: {gwl}")

    for key in db.BODEM_PARAMETERS_NUMERIEK:
        waarde = data.get(key)
        if waarde is not None and waarde < 0:
            raise ValueError(f"{key} mag niet negatief zijn")


def voeg_grondmonster_toe(c, perceel_id, data: dict) -> str:
    controleer_grondmonster(data)
    waarden = {k: data.get(k) for k in MONSTER_KOLOMMEN}
    waarden["a_source"] = waarden["a_source"] or "other"
    waarden["a_depth_upper"] = waarden["a_depth_upper"] or 0

    a_id = str(uuid.uuid4())
    kolommen = ", ".join(("id", "perceel_id") + MONSTER_KOLOMMEN)
    placeholders = ", ".join(["%s"] * (len(MONSTER_KOLOMMEN) + 2))
    c.execute(
        f"INSERT INTO grondmonsters ({kolommen}) VALUES ({placeholders})",
        [a_id, perceel_id] + [waarden[k] for k in MONSTER_KOLOMMEN]
    )
    return a_id


def get_grondmonster(c, a_id):
    c.execute(GRONDMONSTER_SELECT + " WHERE id=%s", (a_id,))
    return c.fetchone()


def lijst_grondmonsters(c, perceel_id, start=None, end=None):
    """Nieuwste monstername eerst; monsters zonder datum achteraan."""
    q = GRONDMONSTER_SELECT + " WHERE perceel_id=%s"
    params = [perceel_id]
    if start is not None:
        q += " AND b_sampling_date >= %s"
        params.append(start)
    if end is not None:
        q += " AND b_sampling_date <= %s"
        params.append(end)
    q += " ORDER BY b_sampling_date DESC NULLS LAST"
    c.execute(q, params)
    return c.fetchall()


def werk_grondmonster_bij(c, a_id, updates: dict):
    huidig = get_grondmonster(c, a_id)
    if not huidig:
        raise ValueError("Grondmonster bestaat niet")
    controleer_grondmonster({**dict(huidig), **updates})

    updates = {k: v for k, v in updates.items() if k in MONSTER_KOLOMMEN}
    if not updates:
        return
    set_clause = ", ".join(f"{col} = %s" for col in updates)
    c.execute(f"UPDATE grondmonsters SET {set_clause} WHERE id = %s", list(updates.values()) + [a_id])


# ---------------- Huidige bodemdata ----------------

def _sorteer_sleutel(monster):
    datum = monster.get("b_sampling_date")
    # Nieuwste eerst, zonder datum achteraan
    return (datum is None, -(datum.toordinal() if datum else 0))


def combineer_bodemdata(monsters, end=None):
    """
    Per parameter de meest recente niet-lege waarde:
    [{parameter, value, a_id, b_sampling_date, a_depth_upper, a_depth_lower, a_source}]
    Monsters genomen na `end` tellen niet mee.
    """
    kandidaten = [
        m for m in monsters
        if end is None or m.get("b_sampling_date") is None or m["b_sampling_date"] <= end
    ]
    kandidaten.sort(key=_sorteer_sleutel)

    huidig = []
    for parameter in db.BODEM_PARAMETERS:
        monster = next((m for m in kandidaten if m.get(parameter) is not None), None)
        if monster is None:
            continue
        huidig.append({
            "parameter": parameter,
            "value": monster[parameter],
            "a_id": monster.get("a_id"),
            "b_sampling_date": monster.get("b_sampling_date"),
            "a_depth_upper": monster.get("a_depth_upper"),
            "a_depth_lower": monster.get("a_depth_lower"),
            "a_source": monster.get("a_source"),
        })
    return huidig


def get_huidige_bodemdata(c, perceel_id, end=None):
    return combineer_bodemdata(lijst_grondmonsters(c, perceel_id, end=end), end)


def bodemwaarde(huidige_bodemdata, parameter):
    for item in huidige_bodemdata:
        if item["parameter"] == parameter:
            return item["value"]
    return None


def bodemwaarden(huidige_bodemdata) -> dict:
    """
    Platte dict {parameter: waarde}; ontbrekende koolstof, organische stof
    en dichtheid worden uit de andere waarden afgeleid.
    """
    waarden = {item["parameter"]: item["value"] for item in huidige_bodemdata}
    if waarden.get("a_c_of") is None:
        waarden["a_c_of"] = bereken_organische_koolstof(waarden.get("a_som_loi"))
    if waarden.get("a_som_loi") is None:
        waarden["a_som_loi"] = bereken_organische_stof(waarden.get("a_c_of"))
    if waarden.get("a_density_sa") is None:
        waarden["a_density_sa"] = bereken_dichtheid(waarden.get("a_som_loi"), waarden.get("b_soiltype_agr"))
    return waarden


def schatting_naar_grondmonster(schatting: dict, peildatum=None) -> dict:
    """Zet een NMI-schatting om naar invoer voor voeg_grondmonster_toe."""
    peildatum = peildatum or date.today()
    data = {k: schatting.get(k) for k in db.BODEM_PARAMETERS if schatting.get(k) is not None}
    if data.get("b_soiltype_agr") not in GRONDSOORTEN:
        data.pop("b_soiltype_agr", None)
    if data.get("b_gwl_class") not in GWL_KLASSEN:
        data.pop("b_gwl_class", None)
    if data.get("a_density_sa") is None:
        data["a_density_sa"] = bereken_dichtheid(data.get("a_som_loi"), data.get("b_soiltype_agr"))
    data.update({
        "a_source": "nl-other-nmi",
        "a_date": peildatum,
        "b_sampling_date": peildatum,
        "a_depth_upper": 0,
        "a_depth_lower": schatting.get("a_depth_lower") or 30,
    })
    return data
