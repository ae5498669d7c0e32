# fdm_app/balans/stikstof.py
"""
Stikstofbalans per perceel en per bedrijf (kg N/ha) over een tijdvak.

balans = aanvoer + afvoer + emissie, waarbij afvoer en emissie negatief zijn.
Aanvoer: meststoffen, binding, depositie en mineralisatie.
Afvoer: oogsten en gewasresten. Emissie: ammoniak uit meststoffen en gewasresten.
"""
import calendar
import logging
from datetime import date

from fdm_app.balans.gedeeld import (
    afgerond, als_datum, dagen, gewas_van, gewogen_gemiddelde, is_grasland,
    meststof_van, overlapt, tijdvak_perceel, vereiste_bodem,
)

logger = logging.getLogger(__name__)

MESTSTOF_TYPES = ("mineral", "manure", "compost", "other")

# Mineralisatie (kg N/ha/jaar) per grondsoort
MINERALISATIE_DALGROND = 20
MINERALISATIE_VEEN_GRASLAND = 160
MINERALISATIE_VEEN_BOUWLAND = 20

# Ammoniakemissiefactor per toedieningsmethode: (grasland, bouwland, kale grond)
EMISSIEFACTOREN = {
    "slotted coulter": (0.17, 0.24, 0.24),
    "incorporation": (0.17, 0.22, 0.46),
    "incorporation 2 tracks": (0.17, 0.46, 0.46),
    "injection": (0.17, 0.24, 0.02),
    "shallow injection": (0.17, 0.24, 0.24),
    "spraying": (0.68, 0.69, 0.69),
    "broadcasting": (0.68, 0.69, 0.69),
    "spoke wheel": (0.17, 0.24, 0.24),
    "pocket placement": (0.68, 0.69, 0.69),
    "narrowband": (0.17, 0.36, 0.36),
}

# Teelten die voor de emissie als kale grond gelden (braak, groenbemesters e.d.)
KALE_GROND_CODES = ("nl_6794", "nl_662", "nl_6798", "nl_2300", "nl_3802", "nl_3801")

ZANDGRONDEN = ("dekzand", "dalgrond", "duinzand", "loess")
KLEIGRONDEN = ("zeeklei", "rivierklei", "maasklei", "moerige_klei")
GWL_DROOG = ("VI", "VII", "VIII", "sVI", "sVII", "bVI", "bVII", "VIIo", "VIId")
GWL_GEMIDDELD = ("IV", "IVu", "V", "Va", "Vb", "sV", "sVb", "Vao", "Vad")


def _waarde(id_, waarde):
    return {"id": id_, "value": waarde}


def _leeg_per_type(lijst="applications"):
    uit = {"total": 0.0}
    for soort in MESTSTOF_TYPES:
        uit[soort] = {"total": 0.0, lijst: []}
    return uit


def _soort(meststof):
    return meststof.get("p_type") if meststof.get("p_type") in MESTSTOF_TYPES else "other"


# ============== AANVOER ==============

def aanvoer_meststoffen(bemestingen, meststoffen: dict) -> dict:
    uit = _leeg_per_type()
    for bemesting in bemestingen:
        meststof = meststof_van(bemesting, meststoffen)
        waarde = (bemesting.get("p_app_amount") or 0) * (meststof.get("p_n_rt") or 0) / 1000
        soort = _soort(meststof)
        uit[soort]["total"] += waarde
        uit[soort]["applications"].append(_waarde(bemesting.get("p_app_id"), waarde))
        uit["total"] += waarde
    return uit


def aanvoer_binding(teelten, gewassen: dict) -> dict:
    """Biologische stikstofbinding (vlinderbloemigen) per teelt."""
    uit = {"total": 0.0, "cultivations": []}
    for teelt in teelten:
        waarde = gewas_van(teelt, gewassen).get("b_n_fixation") or 0
        uit["total"] += waarde
        uit["cultivations"].append(_waarde(teelt.get("b_lu"), waarde))
    return uit


def aanvoer_depositie(perceel: dict, tijdvak: dict) -> dict:
    depositie = perceel.get("b_n_deposition") or 0
    return {"total": depositie * dagen(tijdvak["start"], tijdvak["end"]) / 365}


def _mineralisatie_per_jaar(b_soiltype_agr, grasland: bool):
    if b_soiltype_agr == "dalgrond":
        return MINERALISATIE_DALGROND
    if b_soiltype_agr == "veen":
        return MINERALISATIE_VEEN_GRASLAND if grasland else MINERALISATIE_VEEN_BOUWLAND
    return 0


def aanvoer_mineralisatie(bodem: dict, teelten, gewassen: dict, tijdvak: dict) -> dict:
    """Mineralisatie uit de bodem, naar rato van het deel van elk jaar in het tijdvak."""
    start, end = tijdvak["start"], tijdvak["end"]
    jaren = []
    for jaar in range(start.year, end.year + 1):
        van = max(start, date(jaar, 1, 1))
        tot = min(end, date(jaar, 12, 31))
        per_jaar = _mineralisatie_per_jaar(bodem.get("b_soiltype_agr"), is_grasland(teelten, gewassen, jaar))
        dagen_in_jaar = 366 if calendar.isleap(jaar) else 365
        jaren.append({"year": jaar, "value": per_jaar * dagen(van, tot) / dagen_in_jaar})
    return {"total": sum(j["value"] for j in jaren), "years": jaren}


def bereken_aanvoer(perceel, teelten, bemestingen, bodem, meststoffen, gewassen, tijdvak) -> dict:
    meststof = aanvoer_meststoffen(bemestingen, meststoffen)
    binding = aanvoer_binding(teelten, gewassen)
    depositie = aanvoer_depositie(perceel, tijdvak)
    mineralisatie = aanvoer_mineralisatie(bodem, teelten, gewassen, tijdvak)
    return {
        "total": meststof["total"] + binding["total"] + depositie["total"] + mineralisatie["total"],
        "fertilizers": meststof,
        "fixation": binding,
        "deposition": depositie,
        "mineralisation": mineralisatie,
    }


# ============== AFVOER ==============

def afvoer_oogsten(oogsten, teelten, gewassen: dict) -> dict:
    per_teelt = {t.get("b_lu"): t for t in teelten}
    uit = {"total": 0.0, "harvests": []}
    for oogst in oogsten:
        teelt = per_teelt.get(oogst.get("b_lu")) or {}
        if not teelt.get("b_lu_catalogue"):
            raise ValueError(
                f"Harvest {oogst.get('b_id_harvesting')}: cultivation with b_lu "
                f"'{oogst.get('b_lu')}' is missing b_lu_catalogue"
            )
        gewas = gewas_van(teelt, gewassen)
        # Niet gemeten: standaardwaarden uit de catalogus
        opbrengst = oogst.get("b_lu_yield") or gewas.get("b_lu_yield") or 0
        n_gehalte = oogst.get("b_lu_n_harvestable") or gewas.get("b_lu_n_harvestable") or 0
        waarde = opbrengst * n_gehalte / 1000 * -1
        uit["total"] += waarde
        uit["harvests"].append(_waarde(oogst.get("b_id_harvesting"), waarde))
    return uit


def _gewasrest(teelt, gewas, oogsten):
    """Hoeveelheid gewasrest (kg ds/ha) en het N-gehalte, of None als er geen rest is."""
    hi = gewas.get("b_lu_hi")
    if not hi:
        return None
    opbrengsten = [
        o["b_lu_yield"] for o in oogsten
        if o.get("b_lu") == teelt.get("b_lu") and o.get("b_lu_yield") is not None
    ]
    opbrengst = sum(opbrengsten) / len(opbrengsten) if opbrengsten else (gewas.get("b_lu_yield") or 0)
    return opbrengst / hi * (1 - hi), gewas.get("b_lu_n_residue") or 0


def afvoer_gewasresten(teelten, oogsten, gewassen: dict) -> dict:
    """Gewasresten die op het perceel blijven (m_cropresidue) tellen als afvoer van de geoogste plant."""
    uit = {"total": 0.0, "cultivations": []}
    for teelt in teelten:
        if not teelt.get("m_cropresidue"):
            continue
        rest = _gewasrest(teelt, gewas_van(teelt, gewassen), oogsten)
        waarde = 0.0 if rest is None else rest[0] * rest[1] / 1000 * -1
        uit["total"] += waarde
        uit["cultivations"].append(_waarde(teelt.get("b_lu"), waarde))
    return uit


def bereken_afvoer(teelten, oogsten, gewassen) -> dict:
    oogst = afvoer_oogsten(oogsten, teelten, gewassen)
    resten = afvoer_gewasresten(teelten, oogsten, gewassen)
    return {"total": oogst["total"] + resten["total"], "harvests": oogst, "residues": resten}


# ============== EMISSIE ==============

def _begrens(factor):
    return max(0.0, min(1.0, factor))


def emissiefactor_kunstmest(meststof: dict) -> float:
    if meststof.get("p_ef_nh3") is not None:
        return _begrens(meststof["p_ef_nh3"])
    p_n_rt = meststof.get("p_n_rt") or 0
    p_no3_rt = meststof.get("p_no3_rt") or 0
    p_nh4_rt = meststof.get("p_nh4_rt") or 0
    p_n_org = p_n_rt - p_no3_rt - p_nh4_rt
    factor = (
        p_n_org ** 2 * 7.021e-5
        + p_no3_rt * (meststof.get("p_s_rt") or 0) * -4.308e-5
        + p_nh4_rt ** 2 * 2.498e-4
    )
    return _begrens(factor)


def grondgebruik_op(teelten, gewassen: dict, p_app_date) -> str:
    """'grassland', 'cropland' of 'bare' op de toedieningsdatum."""
    p_app_date = als_datum(p_app_date)
    rotaties = [
        (gewassen.get(t.get("b_lu_catalogue")) or {}).get("b_lu_croprotation")
        for t in teelten
        if t.get("b_lu_catalogue") not in KALE_GROND_CODES and overlapt(t, p_app_date, p_app_date)
    ]
    if any(r in ("grass", "clover") for r in rotaties):
        return "grassland"
    if rotaties:
        return "cropland"
    return "bare"


def emissiefactor_organisch(bemesting: dict, meststof: dict, teelten, gewassen: dict) -> float:
    methode = bemesting.get("p_app_method")
    factoren = EMISSIEFACTOREN.get(methode)
    if factoren is None:
        raise ValueError(
            f"Unsupported application method {methode} for {meststof.get('p_name_nl')} "
            f"({bemesting.get('p_app_id')})"
        )
    grondgebruik = grondgebruik_op(teelten, gewassen, bemesting["p_app_date"])
    return factoren[("grassland", "cropland", "bare").index(grondgebruik)]


def emissie_meststoffen(bemestingen, meststoffen: dict, teelten, gewassen: dict) -> dict:
    uit = _leeg_per_type()
    for bemesting in bemestingen:
        meststof = meststof_van(bemesting, meststoffen)
        hoeveelheid = bemesting.get("p_app_amount") or 0
        soort = _soort(meststof)
        if soort == "mineral":
            waarde = hoeveelheid * (meststof.get("p_n_rt") or 0) * emissiefactor_kunstmest(meststof) / 1000 * -1
        else:
            factor = emissiefactor_organisch(bemesting, meststof, teelten, gewassen)
            waarde = hoeveelheid * (meststof.get("p_nh4_rt") or 0) * factor / 1000 * -1
        uit[soort]["total"] += waarde
        uit[soort]["applications"].append(_waarde(bemesting.get("p_app_id"), waarde))
        uit["total"] += waarde
    return uit


def emissie_gewasresten(teelten, oogsten, gewassen: dict) -> dict:
    uit = {"total": 0.0, "cultivations": []}
    for teelt in teelten:
        if not teelt.get("m_cropresidue"):
            continue
        rest = _gewasrest(teelt, gewas_van(teelt, gewassen), oogsten)
        waarde = 0.0
        if rest is not None:
            hoeveelheid, n_rest = rest
            factor = _begrens((0.41 * n_rest - 5.42) / 100)
            waarde = hoeveelheid * n_rest * factor / 1000 * -1
        uit["total"] += waarde
        uit["cultivations"].append(_waarde(teelt.get("b_lu"), waarde))
    return uit


def bereken_emissie(teelten, oogsten, bemestingen, meststoffen, gewassen) -> dict:
    meststof = emissie_meststoffen(bemestingen, meststoffen, teelten, gewassen)
    resten = emissie_gewasresten(teelten, oogsten, gewassen)
    ammoniak = {"total": meststof["total"] + resten["total"], "fertilizers": meststof, "residues": resten}
    return {"total": ammoniak["total"], "ammonia": ammoniak}


# ============== STREEFWAARDE ==============

def _vochtklasse(b_gwl_class):
    if b_gwl_class in GWL_DROOG:
        return "droog"
    if b_gwl_class in GWL_GEMIDDELD:
        return "gemiddeld"
    return "nat"


def streefwaarde_per_jaar(b_soiltype_agr, b_gwl_class, grasland: bool) -> int:
    """Streefwaarde voor het stikstofoverschot (kg N/ha/jaar)."""
    vocht = _vochtklasse(b_gwl_class)
    if grasland:
        return 80 if b_soiltype_agr in ZANDGRONDEN and vocht == "droog" else 125
    if b_soiltype_agr in ZANDGRONDEN:
        return {"droog": 50, "gemiddeld": 70, "nat": 125}[vocht]
    if b_soiltype_agr in KLEIGRONDEN and vocht == "droog":
        return 115
    return 125


def bereken_streefwaarde(bodem, teelten, gewassen, tijdvak) -> float:
    grasland = is_grasland(teelten, gewassen, tijdvak["start"].year)
    per_jaar = streefwaarde_per_jaar(bodem.get("b_soiltype_agr"), bodem.get("b_gwl_class"), grasland)
    return per_jaar * dagen(tijdvak["start"], tijdvak["end"]) / 365


# ============== PERCEEL / BEDRIJF ==============

def bereken_stikstofbalans_perceel(veld: dict, meststoffen: dict, gewassen: dict, tijdvak: dict) -> dict:
    """
    veld: {perceel, teelten, oogsten, bemestingen, bodem}
    Een fout (ontbrekende gegevens) komt als errorMessage terug in plaats van de balans.
    """
    perceel = veld["perceel"]
    try:
        periode = tijdvak_perceel(perceel, tijdvak)
        bodem = vereiste_bodem(veld.get("bodem"), ("b_soiltype_agr", "b_gwl_class"))
        teelten = veld.get("teelten") or []
        oogsten = veld.get("oogsten") or []
        bemestingen = veld.get("bemestingen") or []

        aanvoer = bereken_aanvoer(perceel, teelten, bemestingen, bodem, meststoffen, gewassen, periode)
        afvoer = bereken_afvoer(teelten, oogsten, gewassen)
        emissie = bereken_emissie(teelten, oogsten, bemestingen, meststoffen, gewassen)
        balans = {
            "b_id": perceel["b_id"],
            "balance": aanvoer["total"] + afvoer["total"] + emissie["total"],
            "supply": aanvoer,
            "removal": afvoer,
            "emission": emissie,
            "target": bereken_streefwaarde(bodem, teelten, gewassen, periode),
        }
    except ValueError as e:
        return {"b_id": perceel["b_id"], "b_area": perceel.get("b_area") or 0, "errorMessage": str(e)}
    return {"b_id": perceel["b_id"], "b_area": perceel.get("b_area") or 0, "balance": balans}


def bereken_stikstofbalans(invoer: dict) -> dict:
    """
    invoer: {tijdvak: {start, end}, velden: [...], meststoffen: [...], gewassen: [...]}
    Bedrijfswaarden zijn oppervlaktegewogen gemiddelden over de percelen zonder fouten.
    """
    meststoffen = {m["p_id_catalogue"]: m for m in invoer.get("meststoffen") or []}
    gewassen = {g["b_lu_catalogue"]: g for g in invoer.get("gewassen") or []}
    tijdvak = {"start": als_datum(invoer["tijdvak"]["start"]), "end": als_datum(invoer["tijdvak"]["end"])}

    resultaten = [
        bereken_stikstofbalans_perceel(veld, meststoffen, gewassen, tijdvak)
        for veld in invoer.get("velden") or []
    ]
    geslaagd = [r for r in resultaten if "balance" in r]
    fouten = [f"[{r['b_id']}] {r['errorMessage']}" for r in resultaten if "errorMessage" in r]
    for fout in fouten:
        logger.warning(f"Stikstofbalans niet te berekenen voor perceel {fout}")

    aanvoer = gewogen_gemiddelde(geslaagd, ("supply", "total"))
    afvoer = gewogen_gemiddelde(geslaagd, ("removal", "total"))
    emissie = gewogen_gemiddelde(geslaagd, ("emission", "total"))
    return afgerond({
        "balance": aanvoer + afvoer + emissie,
        "supply": aanvoer,
        "removal": afvoer,
        "emission": emissie,
        "target": gewogen_gemiddelde(geslaagd, ("target",)),
        "fields": resultaten,
        "hasErrors": bool(fouten),
        "fieldErrorMessages": fouten,
    })
