# fdm_app/gebruiksnormen/bereken_gebruiksnormen.py
"""
Gebruiksnormen per perceel: stikstof, fosfaat en dierlijke mest.

De functies werken op een invoer-dict (zie invoer.py) en raken de database
niet. Elke norm geeft {"normValue": kg/ha, "normSource": omschrijving}.
"""
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from fdm_app.gebruiksnormen.tabellen import (
    BRAAK_CODE, DEROGATIE_TOT_EN_MET, GRASKORTING_VANAF, GRASLAND_CODES_FOSFAAT,
    NIET_BOUWLAND_CODES, REGIO_KEYS, dierlijke_mest_normen, fosfaatnormen,
    standaard_voor_gewas, stikstofnormen,
)

ZAND_EN_LOESS = ("zand_nwc", "zand_zuid", "loess")

BUFFERSTROOK = {"normValue": 0, "normSource": "Bufferstrook: geen plaatsingsruimte"}


def afronden(waarde, decimalen=0):
    """Half-up afronden (2.5 -> 3), in plaats van bankers rounding van round()."""
    stap = Decimal(1).scaleb(-decimalen)
    uitkomst = Decimal(str(waarde)).quantize(stap, rounding=ROUND_HALF_UP)
    return int(uitkomst) if decimalen == 0 else float(uitkomst)


def _datum(waarde):
    if isinstance(waarde, datetime):
        return waarde.date()
    return waarde


# ============== HOOFDTEELT ==============

def bepaal_hoofdteelt(teelten, jaar: int) -> str:
    """
    Teelt die tussen 15 mei en 15 juli de meeste dagen op het perceel staat.
    Zonder teelt in dat venster: groene braak.
    """
    venster_start = date(jaar, 5, 15)
    venster_eind = date(jaar, 7, 15)

    hoofdteelt, meeste_dagen = BRAAK_CODE, 0
    for teelt in teelten:
        start = _datum(teelt.get("b_lu_start"))
        if start is None:
            continue
        eind = _datum(teelt.get("b_lu_end")) or venster_eind
        begin, einde = max(start, venster_start), min(eind, venster_eind)
        dagen = (einde - begin).days + 1 if einde >= begin else 0
        if dagen > meeste_dagen:
            hoofdteelt, meeste_dagen = teelt["b_lu_catalogue"], dagen
    return hoofdteelt


# ============== STIKSTOF ==============

def _in_vorig_jaar(teelten, codes, jaar):
    return any(
        t["b_lu_catalogue"] in codes and t.get("b_lu_start") and _datum(t["b_lu_start"]).year <= jaar - 1
        for t in teelten
    )


def bepaal_subtype(teelt, standaard, teelten, bedrijf, jaar):
    """Omschrijving van het subtype in tabel 2, of None als het niet van toepassing is."""
    rvo = standaard["cultivation_rvo_table2"]
    codes = standaard["b_lu_catalogue_match"]

    if standaard.get("type") == "grasland":
        return "beweiden" if bedrijf.get("has_grazing_intention") else "volledig maaien"

    if standaard.get("type") == "aardappel":
        ras = (teelt.get("b_lu_variety") or "").lower()
        if ras:
            for sub in standaard.get("sub_types") or []:
                if any(v.lower() == ras for v in sub.get("varieties") or []):
                    return sub["omschrijving"]
        overig = next((s for s in standaard.get("sub_types") or [] if s["omschrijving"] == "overig"), None)
        return overig["omschrijving"] if overig else None

    if rvo == "Akkerbouwgewassen, mais":
        if jaar > DEROGATIE_TOT_EN_MET:
            return "non-derogatie"
        return "derogatie" if bedrijf.get("is_derogatie_bedrijf") else "non-derogatie"

    if rvo == "Akkerbouwgewassen, Luzerne":
        return "volgende jaren" if _in_vorig_jaar(teelten, codes, jaar) else "eerste jaar"

    if rvo == "Akkerbouwgewassen, koolzaad":
        return {"nl_1922": "winter", "nl_1923": "zomer"}.get(teelt["b_lu_catalogue"])

    if rvo == "Akkerbouwgewassen, Gras voor industriële verwerking":
        if _in_vorig_jaar(teelten, codes, jaar):
            return "inzaai voor 15 mei en volgende jaren"
        return "inzaai in september en eerste jaar"

    if rvo in ("Akkerbouwgewassen, Graszaad, Engels raaigras", "Akkerbouwgewassen, Roodzwenkgras"):
        return "overjarig" if _in_vorig_jaar(teelten, codes, jaar) else "1e jaars"

    if rvo == "Akkerbouwgewassen, Ui overig, zaaiui of winterui.":
        return {"nl_1932": "1e jaars", "nl_1933": "2e jaars"}.get(teelt["b_lu_catalogue"])

    if rvo.startswith("Bladgewassen"):
        if teelt["b_lu_catalogue"] == bepaal_hoofdteelt(teelten, jaar):
            return "1e teelt"
        return "volgteelt"

    return None


def _periode_datums(sub, peiljaar):
    start = date(peiljaar, sub["period_start_month"], sub.get("period_start_day") or 1)
    eind_jaar = peiljaar + 1 if sub["period_start_month"] > sub["period_end_month"] else peiljaar
    eind = date(eind_jaar, sub["period_end_month"], sub.get("period_end_day") or 1)
    return start, eind


def normen_voor_teelt(standaard, b_lu_end, b_lu_start=None, omschrijving=None):
    """
    Regionormen van een standaard. Met subtypes: eerst op omschrijving, daarna
    op tijdvak. Een tijdvak 'van 1 januari tot minstens X' vraagt een teelt die
    er vanaf het begin tot minstens X staat; 'vanaf X (tot minstens Y)' een teelt
    die op of na X start (en tot minstens Y blijft).
    """
    sub_types = standaard.get("sub_types")
    if not sub_types:
        return standaard.get("norms")

    if omschrijving:
        sub = next((s for s in sub_types if s.get("omschrijving") == omschrijving), None)
        if sub:
            return sub["norms"]

    eind = _datum(b_lu_end)
    start = _datum(b_lu_start) or date(eind.year, 1, 1)

    kandidaten = []
    for sub in sub_types:
        if not (sub.get("period_start_month") and sub.get("period_end_month")):
            continue
        periode_start, periode_eind = _periode_datums(sub, eind.year)
        if sub["period_start_month"] > 1:
            if sub["period_end_month"] < 12:
                past = start >= periode_start and eind >= periode_eind
            else:
                past = start >= periode_start
        else:
            past = start <= periode_start and eind >= periode_eind
        if past:
            kandidaten.append(sub)

    if kandidaten:
        # Vroegste begin van het tijdvak, bij gelijkspel het langste tijdvak
        kandidaten.sort(key=lambda s: (
            s["period_start_month"] * 100 + (s.get("period_start_day") or 0),
            -(s["period_end_month"] * 100 + (s.get("period_end_day") or 0)),
        ))
        return kandidaten[0]["norms"]

    for sub in sub_types:
        if not (sub.get("period_start_month") and sub.get("period_end_month")):
            continue
        periode_start, periode_eind = _periode_datums(sub, eind.year)
        if periode_start <= eind <= periode_eind:
            return sub["norms"]
    return None


def _graskorting(teelten, jaar):
    """Korting bij graslandvernieuwing of -vernietiging in het jaar zelf, anders None."""
    gesorteerd = sorted((t for t in teelten if t.get("b_lu_start")), key=lambda t: _datum(t["b_lu_start"]))

    for vorige, huidige in zip(gesorteerd, gesorteerd[1:]):
        einde = _datum(vorige.get("b_lu_end"))
        if einde is None or einde.year != jaar:
            continue

        vorige_gras = vorige["b_lu_catalogue"] in NIET_BOUWLAND_CODES
        if not vorige_gras:
            continue
        huidige_standaard = standaard_voor_gewas(jaar, huidige["b_lu_catalogue"]) or {}
        vorige_standaard = standaard_voor_gewas(jaar, vorige["b_lu_catalogue"]) or {}

        if huidige["b_lu_catalogue"] in NIET_BOUWLAND_CODES:
            if date(jaar, 6, 1) <= einde <= date(jaar, 8, 31):
                return 50, ". Korting: 50kg N/ha: graslandvernieuwing"
            raise ValueError(
                "Graslandvernieuwing op zand- en lössgrond is alleen toegestaan tussen 1 juni en 31 augustus."
            )

        rvo = huidige_standaard.get("cultivation_rvo_table2", "")
        is_mais = "mais" in rvo
        is_aardappel = huidige_standaard.get("type") == "aardappel"
        is_pootgoed = (
            "pootaardappelen" in rvo or "uitgroeiteelt" in rvo
            or huidige["b_lu_catalogue"] in ("nl_2015", "nl_2016")
        )
        if not (is_mais or (is_aardappel and not is_pootgoed)):
            continue

        # Gras dat als vanggewas is ingezaaid (augustus of later in het vorige jaar) telt niet
        start_gras = _datum(vorige["b_lu_start"])
        if vorige_standaard.get("is_vanggewas") or (start_gras.year == jaar - 1 and start_gras.month >= 8):
            continue

        if date(jaar, 2, 1) <= einde <= date(jaar, 5, 10):
            return 65, ". Korting: 65kg N/ha: graslandvernietiging"
        raise ValueError(
            "Graslandvernietiging op zand- en lössgrond is alleen toegestaan tussen 1 februari en 10 mei."
        )
    return None


def bereken_korting(teelten, regio, jaar: int):
    """
    Korting op de stikstofnorm voor zand en löss. Geeft (kg N/ha, omschrijving);
    de omschrijving wordt achter de normbron geplakt.
    """
    if regio not in ZAND_EN_LOESS:
        return 0, "."

    if jaar >= GRASKORTING_VANAF:
        graskorting = _graskorting(teelten, jaar)
        if graskorting:
            return graskorting

    hoofdteelt = bepaal_hoofdteelt(teelten, jaar)
    if hoofdteelt in NIET_BOUWLAND_CODES:
        return 0, "."
    standaard = standaard_voor_gewas(jaar, hoofdteelt)
    if standaard and standaard.get("is_winterteelt"):
        return 0, ". Geen korting: winterteelt aanwezig"

    # Vanggewas ingezaaid na 15 juli van het vorige jaar en voor 1 februari
    vorig_jaar = jaar - 1
    vanggewassen = []
    for t in teelten:
        start = _datum(t.get("b_lu_start"))
        if start is None or start.year != vorig_jaar:
            continue
        std = standaard_voor_gewas(jaar, t["b_lu_catalogue"])
        if std and std.get("is_vanggewas") and date(vorig_jaar, 7, 15) < start < date(jaar, 2, 1):
            vanggewassen.append(t)
    if not vanggewassen:
        return 20, ". Korting: 20kg N/ha: geen vanggewas of winterteelt"

    tot_februari = [
        t for t in vanggewassen
        if t.get("b_lu_end") is None or _datum(t["b_lu_end"]) >= date(jaar, 2, 1)
    ]
    if not tot_februari:
        return 20, ". Korting: 20kg N/ha: vanggewas staat niet tot 1 februari"

    zaaidatum = min(_datum(t["b_lu_start"]) for t in tot_februari)
    if zaaidatum <= date(vorig_jaar, 10, 1):
        return 0, ". Geen korting: vanggewas gezaaid uiterlijk 1 oktober"
    if zaaidatum <= date(vorig_jaar, 10, 15):
        return 5, ". Korting: 5kg N/ha, vanggewas gezaaid tussen 2 t/m 14 oktober"
    if zaaidatum < date(vorig_jaar, 11, 1):
        return 10, ". Korting: 10kg N/ha, vanggewas gezaaid tussen 15 t/m 31 oktober"
    return 20, ". Korting: 20kg N/ha, vanggewas gezaaid op of na 1 november"


def bereken_stikstofnorm(invoer: dict) -> dict:
    jaar = invoer["jaar"]
    perceel = invoer["perceel"]
    teelten = invoer.get("teelten") or []

    if perceel.get("b_bufferstrip"):
        return dict(BUFFERSTROOK)

    b_lu_catalogue = bepaal_hoofdteelt(teelten, jaar)
    if b_lu_catalogue == BRAAK_CODE:
        teelt = {
            "b_lu_catalogue": BRAAK_CODE,
            "b_lu_start": date(jaar, 1, 1),
            "b_lu_end": date(jaar, 12, 31),
            "b_lu_variety": None,
        }
    else:
        teelt = next(t for t in teelten if t["b_lu_catalogue"] == b_lu_catalogue)

    regio = perceel.get("b_region")
    if regio not in REGIO_KEYS:
        raise ValueError(f"Unknown region {regio} for field {perceel.get('b_id')}")

    kandidaten = [ns for ns in stikstofnormen(jaar) if b_lu_catalogue in ns["b_lu_catalogue_match"]]
    if not kandidaten:
        raise ValueError(f"No matching nitrogen standard found for b_lu_catalogue {b_lu_catalogue}.")
    standaard = kandidaten[0]
    if len(kandidaten) > 1:
        standaard = next(
            (ns for ns in kandidaten
             if any(s.get("omschrijving") or s.get("varieties") for s in ns.get("sub_types") or [])),
            kandidaten[0]
        )

    omschrijving = bepaal_subtype(teelt, standaard, teelten, invoer.get("bedrijf") or {}, jaar)
    normen = normen_voor_teelt(
        standaard,
        teelt.get("b_lu_end") or date(jaar, 12, 31),
        teelt.get("b_lu_start"),
        omschrijving,
    )
    if not normen:
        raise ValueError(
            f"Applicable norms object is undefined for {standaard['cultivation_rvo_table2']} in region {regio}."
        )
    regionorm = normen.get(regio)
    if not regionorm:
        raise ValueError(f"No norms found for region {regio} for {standaard['cultivation_rvo_table2']}.")

    waarde = regionorm["nv_area"] if perceel.get("b_in_nv") else regionorm["standard"]
    korting, korting_tekst = bereken_korting(teelten, regio, jaar)

    subtype_tekst = f" ({omschrijving})" if omschrijving else ""
    return {
        "normValue": max(0, waarde - korting),
        "normSource": f"{standaard['cultivation_rvo_table2']}{subtype_tekst}{korting_tekst}",
    }


# ============== FOSFAAT ==============

def bepaal_fosfaatklasse(a_p_cc, a_p_al, is_grasland: bool) -> str:
    """Fosfaatklasse uit P-CaCl2 (mg P/kg) en P-AL (mg P2O5/100g)."""
    p_cc = afronden(a_p_cc, 1)
    p_al = afronden(a_p_al, 0)

    if is_grasland:
        if p_cc < 0.8:
            return "Arm" if p_al < 21 else "Laag" if p_al <= 45 else "Neutraal" if p_al <= 55 else "Ruim"
        if p_cc <= 1.4:
            return "Arm" if p_al < 21 else "Laag" if p_al <= 30 else "Neutraal" if p_al <= 45 else "Ruim"
        if p_cc <= 2.4:
            return "Laag" if p_al < 21 else "Neutraal" if p_al <= 30 else "Ruim" if p_al <= 55 else "Hoog"
        if p_cc <= 3.4:
            return "Neutraal" if p_al < 21 else "Ruim" if p_al <= 45 else "Hoog"
        return "Ruim" if p_al < 31 else "Hoog"

    if p_cc < 0.8:
        return "Arm" if p_al < 46 else "Laag"
    if p_cc <= 1.4:
        return "Arm" if p_al < 46 else "Laag" if p_al <= 55 else "Neutraal"
    if p_cc <= 2.4:
        return "Arm" if p_al < 31 else "Laag" if p_al <= 45 else "Neutraal" if p_al <= 55 else "Ruim"
    if p_cc <= 3.4:
        if p_al < 21:
            return "Arm"
        return "Laag" if p_al <= 30 else "Neutraal" if p_al <= 45 else "Ruim" if p_al <= 55 else "Hoog"
    return "Laag" if p_al < 31 else "Neutraal" if p_al <= 45 else "Ruim" if p_al <= 55 else "Hoog"


def bereken_fosfaatnorm(invoer: dict) -> dict:
    jaar = invoer["jaar"]
    if invoer["perceel"].get("b_bufferstrip"):
        return dict(BUFFERSTROOK)

    bodem = invoer.get("bodem") or {}
    a_p_cc, a_p_al = bodem.get("a_p_cc"), bodem.get("a_p_al")
    if not a_p_cc or not a_p_al:
        raise ValueError("Missing soil analysis data for Fosfaatgebruiksnorm")

    is_grasland = bepaal_hoofdteelt(invoer.get("teelten") or [], jaar) in GRASLAND_CODES_FOSFAAT
    klasse = bepaal_fosfaatklasse(a_p_cc, a_p_al, is_grasland)
    normen = fosfaatnormen(jaar).get(klasse)
    if not normen:
        raise ValueError(f"No phosphate norms found for class {klasse}.")

    if is_grasland:
        return {"normValue": normen["grasland"], "normSource": f"Grasland: {klasse}"}
    return {"normValue": normen["bouwland"], "normSource": f"Bouwland: {klasse}"}


# ============== DIERLIJKE MEST ==============

def bereken_dierlijke_mest_norm(invoer: dict) -> dict:
    perceel = invoer["perceel"]
    bedrijf = invoer.get("bedrijf") or {}
    normen = dierlijke_mest_normen(invoer["jaar"])

    if perceel.get("b_bufferstrip"):
        return dict(BUFFERSTROOK)

    if not bedrijf.get("is_derogatie_bedrijf"):
        return {"normValue": normen["standaard"], "normSource": "Standaard - geen derogatie"}
    if perceel.get("b_in_natura2000"):
        return {"normValue": normen["derogatie_beperkt"], "normSource": "Derogatie - Natura2000 Gebied"}
    if perceel.get("b_in_gwbg"):
        return {"normValue": normen["derogatie_beperkt"], "normSource": "Derogatie - Grondwaterbeschermingsgebied"}
    if perceel.get("b_in_derogatievrije_zone"):
        return {"normValue": normen["derogatie_beperkt"], "normSource": "Derogatie - Derogatie-vrije zone"}
    if perceel.get("b_in_nv"):
        return {"normValue": normen["derogatie_nv"], "normSource": "Derogatie - NV Gebied"}
    return {"normValue": normen["derogatie"], "normSource": "Derogatie"}


def bereken_gebruiksnormen(invoer: dict) -> dict:
    """Alle drie de normen voor één perceel."""
    return {
        "manure": bereken_dierlijke_mest_norm(invoer),
        "nitrogen": bereken_stikstofnorm(invoer),
        "phosphate": bereken_fosfaatnorm(invoer),
    }
