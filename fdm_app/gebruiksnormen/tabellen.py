# fdm_app/gebruiksnormen/tabellen.py
"""
Vaste RVO-tabellen voor de gebruiksnormen.

- STIKSTOFNORMEN: tabel 2 (stikstofgebruiksnormen per gewas en regio), per jaar
- FOSFAATNORMEN: norm per fosfaatklasse voor grasland en bouwland, per jaar
- TABEL_9: werkingscoëfficiënten van organische meststoffen
- TABEL_11: forfaitaire gehalten (kg/ton) per RVO-mestcode

Elk jaar verwijst naar de tabel die in dat jaar geldt; ontbreekt een jaar,
dan geldt de tabel van het hoogste eerdere jaar (zie beste_jaar).
"""

REGIO_KEYS = ("klei", "veen", "loess", "zand_nwc", "zand_zuid")

# Percentage van de norm dat in een NV-gebied geldt
NV_FACTOR = 0.8

# Gras(land)teelten: geen bouwland, geen korting op de norm
NIET_BOUWLAND_CODES = ("nl_265", "nl_266", "nl_331", "nl_332")
GRASLAND_CODES_FOSFAAT = ("nl_265", "nl_266", "nl_331", "nl_332", "nl_335")

BRAAK_CODE = "nl_6794"

# Vanaf dit jaar telt graslandvernieuwing en -vernietiging mee in de korting
GRASKORTING_VANAF = 2026
# Vanaf dit jaar is derogatie niet meer mogelijk (maïsnorm altijd zonder derogatie)
DEROGATIE_TOT_EN_MET = 2025


def _regio(klei, veen, zand_nwc, zand_zuid, loess):
    waarden = {"klei": klei, "veen": veen, "zand_nwc": zand_nwc, "zand_zuid": zand_zuid, "loess": loess}
    return {
        regio: {"standard": w, "nv_area": int(w * NV_FACTOR + 0.5)}
        for regio, w in waarden.items()
    }


def _sub(omschrijving, norms, **extra):
    return {"omschrijving": omschrijving, "norms": norms, **extra}


def _periode(omschrijving, start, eind, norms):
    """Tijdvak als (maand, dag) tot (maand, dag)."""
    return {
        "omschrijving": omschrijving,
        "period_start_month": start[0], "period_start_day": start[1],
        "period_end_month": eind[0], "period_end_day": eind[1],
        "norms": norms,
    }


def _standaard(rvo_table2, codes, norms=None, sub_types=None, type=None,
               is_winterteelt=False, is_vanggewas=False):
    return {
        "type": type,
        "cultivation_rvo_table2": rvo_table2,
        "b_lu_catalogue_match": tuple(codes),
        "is_winterteelt": is_winterteelt,
        "is_vanggewas": is_vanggewas,
        "norms": norms,
        "sub_types": sub_types,
    }


# ============== TABEL 2: STIKSTOF ==============

_STIKSTOF_2025 = [
    _standaard("Grasland", ["nl_265", "nl_331", "nl_332"], type="grasland", sub_types=[
        _sub("beweiden", _regio(345, 265, 250, 250, 250)),
        _sub("volledig maaien", _regio(385, 300, 320, 320, 320)),
    ]),
    _standaard("Tijdelijk grasland", ["nl_266"], type="tijdelijk grasland", sub_types=[
        _periode("van 1 januari tot minstens 15 mei", (1, 1), (5, 15), _regio(110, 95, 90, 90, 90)),
        _periode("van 1 januari tot minstens 15 augustus", (1, 1), (8, 15), _regio(250, 190, 200, 200, 200)),
        _periode("van 1 januari tot minstens 15 oktober", (1, 1), (10, 15), _regio(310, 240, 250, 250, 250)),
        _periode("vanaf 15 april tot minstens 15 oktober", (4, 15), (10, 15), _regio(310, 240, 250, 250, 250)),
        _periode("vanaf 15 oktober", (10, 15), (12, 31), _regio(0, 0, 0, 0, 0)),
    ]),
    _standaard("Akkerbouwgewassen, mais", ["nl_259", "nl_316", "nl_317", "nl_2032"], sub_types=[
        _sub("derogatie", _regio(185, 150, 150, 140, 150)),
        _sub("non-derogatie", _regio(160, 140, 140, 112, 140)),
    ]),
    _standaard("Akkerbouwgewassen, consumptieaardappelen", ["nl_2014", "nl_2017"], type="aardappel", sub_types=[
        _sub("hoge norm", _regio(275, 250, 260, 260, 260),
             varieties=["Innovator", "Fontane", "Challenger", "Markies", "Ivory Russet"]),
        _sub("lage norm", _regio(230, 220, 220, 220, 220),
             varieties=["Agria", "Bintje", "Victoria", "Lady Olympia", "Festien"]),
        _sub("overig", _regio(250, 235, 240, 240, 240)),
    ]),
    _standaard("Akkerbouwgewas, pootaardappelen", ["nl_2015", "nl_2016"], type="aardappel", sub_types=[
        _sub("hoge norm", _regio(140, 140, 140, 140, 140),
             varieties=["Adora", "Spunta", "Desiree", "Sante", "Miranda"]),
        _sub("lage norm", _regio(120, 120, 120, 120, 120),
             varieties=["Arizona", "Eigenheimer", "Frieslander"]),
        _sub("overig", _regio(140, 140, 140, 140, 140)),
    ]),
    _standaard("Akkerbouwgewassen, Aardappelen uitgroeiteelt", ["nl_2950"], type="aardappel", sub_types=[
        _sub("overig", _regio(120, 120, 120, 120, 120)),
    ]),
    _standaard("Vruchtgewassen, Landbouwstambonen, rijp zaad", ["nl_2751"],
               norms=_regio(135, 135, 135, 135, 135)),
    _standaard("Akkerbouwgewassen, Zomertarwe", ["nl_234"], norms=_regio(150, 140, 140, 140, 140)),
    _standaard("Akkerbouwgewassen, Wintertarwe", ["nl_233"], is_winterteelt=True,
               norms=_regio(245, 230, 160, 160, 190)),
    _standaard("Akkerbouwgewassen, Zomergerst", ["nl_236"], norms=_regio(80, 80, 80, 80, 80)),
    _standaard("Akkerbouwgewassen, Wintergerst", ["nl_235"], is_winterteelt=True,
               norms=_regio(140, 140, 140, 140, 140)),
    _standaard("Akkerbouwgewassen, Suikerbieten", ["nl_256"], norms=_regio(150, 150, 145, 145, 150)),
    _standaard("Akkerbouwgewassen, Luzerne", ["nl_258"], sub_types=[
        _sub("eerste jaar", _regio(60, 60, 60, 60, 60)),
        _sub("volgende jaren", _regio(0, 0, 0, 0, 0)),
    ]),
    _standaard("Akkerbouwgewassen, koolzaad", ["nl_1922", "nl_1923"], sub_types=[
        _sub("winter", _regio(205, 205, 205, 205, 205)),
        _sub("zomer", _regio(120, 120, 120, 120, 120)),
    ]),
    _standaard("Akkerbouwgewassen, Gras voor industriële verwerking", ["nl_3805"], sub_types=[
        _sub("inzaai in september en eerste jaar", _regio(30, 30, 30, 30, 30)),
        _sub("inzaai voor 15 mei en volgende jaren", _regio(310, 310, 310, 310, 310)),
    ]),
    _standaard("Akkerbouwgewassen, Graszaad, Engels raaigras", ["nl_6750"], sub_types=[
        _sub("1e jaars", _regio(165, 165, 165, 165, 165)),
        _sub("overjarig", _regio(200, 200, 200, 200, 200)),
    ]),
    _standaard("Akkerbouwgewassen, Roodzwenkgras", ["nl_6784"], sub_types=[
        _sub("1e jaars", _regio(85, 85, 85, 85, 85)),
        _sub("overjarig", _regio(115, 115, 115, 115, 115)),
    ]),
    _standaard("Akkerbouwgewassen, Ui overig, zaaiui of winterui.", ["nl_1932", "nl_1933"], sub_types=[
        _sub("1e jaars", _regio(170, 170, 170, 170, 170)),
        _sub("2e jaars", _regio(170, 170, 170, 170, 170)),
    ]),
    _standaard("Bladgewassen, Spinazie", ["nl_2773"], sub_types=[
        _sub("1e teelt", _regio(260, 260, 260, 260, 260)),
        _sub("volgteelt", _regio(145, 145, 145, 145, 145)),
    ]),
    _standaard("Bladgewassen, Slasoorten", ["nl_2767"], sub_types=[
        _sub("1e teelt", _regio(180, 180, 180, 180, 180)),
        _sub("volgteelt", _regio(120, 120, 120, 120, 120)),
    ]),
    _standaard("Bladgewassen, Andijvie eerste teelt volgteelt", ["nl_2708"], sub_types=[
        _sub("1e teelt", _regio(180, 180, 180, 180, 180)),
        _sub("volgteelt", _regio(110, 110, 110, 110, 110)),
    ]),
    _standaard("Groenbemesters, Gele mosterd", ["nl_428"], is_vanggewas=True,
               norms=_regio(60, 60, 60, 60, 60)),
    _standaard("Groenbemesters, Bladrammenas", ["nl_3518"], is_vanggewas=True,
               norms=_regio(60, 60, 60, 60, 60)),
    _standaard("Groenbemesters, Winterrogge", ["nl_3523"], is_vanggewas=True,
               norms=_regio(60, 60, 60, 60, 60)),
    _standaard("Groene braak, spontane opkomst", [BRAAK_CODE], norms=_regio(0, 0, 0, 0, 0)),
]

STIKSTOFNORMEN = {
    2025: _STIKSTOF_2025,
}


# ============== FOSFAAT ==============

FOSFAAT_KLASSEN = ("Arm", "Laag", "Neutraal", "Ruim", "Hoog")

FOSFAATNORMEN = {
    2025: {
        "Arm": {"grasland": 120, "bouwland": 120},
        "Laag": {"grasland": 105, "bouwland": 80},
        "Neutraal": {"grasland": 95, "bouwland": 70},
        "Ruim": {"grasland": 90, "bouwland": 60},
        "Hoog": {"grasland": 75, "bouwland": 40},
    },
}


# ============== DIERLIJKE MEST ==============

DIERLIJKE_MEST_NORMEN = {
    2025: {
        "standaard": 170,
        "derogatie": 200,
        "derogatie_nv": 190,
        "derogatie_beperkt": 170,
    },
}


# ============== TABEL 9: WERKINGSCOËFFICIËNTEN ==============

SEPT_T_M_JAN = "1 september t/m 31 januari"

_VASTE_MEST_KLEI_VEEN_NAJAAR = {
    "description": "Op bouwland op klei en veen, van 1 september t/m 31 januari",
    "grondsoortCode": ("klei", "veen"),
    "isBouwland": True,
    "applicationPeriod": SEPT_T_M_JAN,
    "p_n_wcl": 0.3,
}

TABEL_9 = [
    {
        "description": "Drijfmest van graasdieren op het eigen bedrijf geproduceerd",
        "p_type_rvo": ("14", "60", "18", "19"),
        "onFarmProduced": True,
        "subTypes": [
            {"description": "Op bedrijf met beweiding", "b_grazing_intention": True, "p_n_wcl": 0.45},
            {"description": "Op bedrijf zonder beweiding", "b_grazing_intention": False, "p_n_wcl": 0.6},
        ],
    },
    {
        "description": "Drijfmest van graasdieren aangevoerd",
        "p_type_rvo": ("14", "60", "18", "19"),
        "onFarmProduced": False,
        "p_n_wcl": 0.6,
    },
    {
        "description": "Drijfmest van varkens",
        "p_type_rvo": ("46", "50"),
        "subTypes": [
            {"description": "Op klei en veen", "grondsoortCode": ("klei", "veen"), "p_n_wcl": 0.6},
            {"description": "Op zand en löss", "grondsoortCode": ("zand_nwc", "zand_zuid", "loess"), "p_n_wcl": 0.8},
        ],
    },
    {
        "description": "Drijfmest van overige diersoorten",
        "p_type_rvo": ("30", "76", "81", "91", "92"),
        "p_n_wcl": 0.6,
    },
    {
        "description": "Dunne fractie na mestbewerking en gier",
        "p_type_rvo": ("12", "17", "41", "42"),
        "p_n_wcl": 0.8,
    },
    {
        "description": "Vaste mest van graasdieren op het eigen bedrijf geproduceerd",
        "p_type_rvo": ("10", "56", "61", "25", "26", "27", "95", "96"),
        "onFarmProduced": True,
        "subTypes": [
            _VASTE_MEST_KLEI_VEEN_NAJAAR,
            {"description": "Overige toepassingen op bedrijf met beweiding", "b_grazing_intention": True,
             "p_n_wcl": 0.45},
            {"description": "Overige toepassingen op bedrijf zonder beweiding", "b_grazing_intention": False,
             "p_n_wcl": 0.6},
        ],
    },
    {
        "description": "Vaste mest van graasdieren aangevoerd",
        "p_type_rvo": ("10", "56", "61", "25", "26", "27", "95", "96"),
        "onFarmProduced": False,
        "subTypes": [
            _VASTE_MEST_KLEI_VEEN_NAJAAR,
            {"description": "Overige toepassingen", "p_n_wcl": 0.4},
        ],
    },
    {
        "description": "Vaste mest van varkens, pluimvee en nertsen",
        "p_type_rvo": ("23", "31", "32", "33", "35", "39", "40", "43", "75", "80",
                       "97", "98", "99", "100", "101"),
        "p_n_wcl": 0.55,
    },
    {
        "description": "Vaste mest van overige diersoorten",
        "p_type_rvo": ("11", "13", "24", "30", "76", "81", "90", "91", "92",
                       "102", "103", "104", "105", "106"),
        "subTypes": [
            _VASTE_MEST_KLEI_VEEN_NAJAAR,
            {"description": "Overige toepassingen", "p_n_wcl": 0.4},
        ],
    },
    {"description": "Compost", "p_type_rvo": ("111", "112"), "p_n_wcl": 0.1},
    {"description": "Champost", "p_type_rvo": ("110", "117"), "p_n_wcl": 0.25},
    {"description": "Zuiveringsslib", "p_type_rvo": ("113", "114"), "p_n_wcl": 0.4},
    {"description": "Overige organische meststoffen", "p_type_rvo": ("116",), "p_n_wcl": 0.5},
    {"description": "Mineralenconcentraat", "p_type_rvo": ("120",), "p_n_wcl": 1.0},
]


# ============== TABEL 11: FORFAITAIRE GEHALTEN ==============

def _mestcode(omschrijving, n=None, p=None, dierlijk=True):
    return {"omschrijving": omschrijving, "p_n_rt": n, "p_p_rt": p, "dierlijk": dierlijk}


# kg N en kg P2O5 per ton product
TABEL_11 = {
    "10": _mestcode("Rundvee - Vaste mest", 6.6, 3.8),
    "11": _mestcode("Rundvee - Gier", 4.0, 0.2),
    "12": _mestcode("Rundvee - Dunne fractie", 4.0, 1.0),
    "13": _mestcode("Rundvee - Vaste mest, overig", 6.6, 3.8),
    "14": _mestcode("Rundvee - Drijfmest melkvee", 4.0, 1.5),
    "17": _mestcode("Rundvee - Gier, overig", 4.0, 0.2),
    "18": _mestcode("Rundvee - Drijfmest vleeskalveren", 3.1, 1.3),
    "19": _mestcode("Rundvee - Drijfmest overig", 4.2, 1.6),
    "23": _mestcode("Pluimvee - Vaste mest leghennen", 19.6, 13.9),
    "24": _mestcode("Konijnen - Vaste mest", 7.6, 9.7),
    "25": _mestcode("Paarden - Vaste mest", 4.7, 2.9),
    "26": _mestcode("Ezels - Vaste mest", 4.7, 2.9),
    "27": _mestcode("Pony's - Vaste mest", 4.7, 2.9),
    "30": _mestcode("Nertsen - Mest", 9.6, 9.4),
    "31": _mestcode("Pluimvee - Vaste mest vleeskuikens", 27.8, 16.0),
    "32": _mestcode("Pluimvee - Vaste mest vleeskuikenouderdieren", 18.3, 14.0),
    "33": _mestcode("Pluimvee - Vaste mest kalkoenen", 22.1, 18.7),
    "35": _mestcode("Pluimvee - Gedroogde mest", 33.8, 25.3),
    "39": _mestcode("Pluimvee - Vaste mest eenden", 8.4, 7.0),
    "40": _mestcode("Varkens - Vaste mest", 8.6, 7.5),
    "41": _mestcode("Varkens - Gier", 3.7, 0.3),
    "42": _mestcode("Varkens - Dunne fractie", 4.1, 0.9),
    "43": _mestcode("Varkens - Vaste mest, overig", 8.6, 7.5),
    "46": _mestcode("Varkens - Drijfmest vleesvarkens", 7.0, 3.5),
    "50": _mestcode("Varkens - Drijfmest zeugen", 4.6, 2.8),
    "56": _mestcode("Schapen - Mest, alle systemen", 9.2, 4.4),
    "60": _mestcode("Geiten - Drijfmest", 5.0, 2.1),
    "61": _mestcode("Geiten - Vaste mest", 8.8, 5.1),
    "75": _mestcode("Pluimvee - Vaste mest overig", 20.0, 14.0),
    "76": _mestcode("Overige diersoorten - Drijfmest", 4.0, 1.5),
    "80": _mestcode("Pluimvee - Mest, overig", 20.0, 14.0),
    "81": _mestcode("Overige diersoorten - Mest", 6.0, 4.0),
    "90": _mestcode("Overige diersoorten - Vaste mest", 6.0, 4.0),
    "91": _mestcode("Overige diersoorten - Drijfmest, overig", 4.0, 1.5),
    "92": _mestcode("Overige diersoorten - Mest, overig", 6.0, 4.0),
    "95": _mestcode("Rundvee - Vaste mest potstal", 7.5, 4.1),
    "96": _mestcode("Schapen - Vaste mest potstal", 9.2, 4.4),
    "97": _mestcode("Pluimvee - Vaste mest, droog", 25.0, 18.0),
    "98": _mestcode("Pluimvee - Vaste mest, strooisel", 22.0, 16.0),
    "99": _mestcode("Nertsen - Vaste mest", 9.6, 9.4),
    "100": _mestcode("Varkens - Vaste mest, biologisch", 8.6, 7.5),
    "101": _mestcode("Pluimvee - Vaste mest, biologisch", 20.0, 14.0),
    "102": _mestcode("Overige diersoorten - Vaste mest, 102", 6.0, 4.0),
    "103": _mestcode("Overige diersoorten - Vaste mest, 103", 6.0, 4.0),
    "104": _mestcode("Overige diersoorten - Vaste mest, 104", 6.0, 4.0),
    "105": _mestcode("Overige diersoorten - Vaste mest, 105", 6.0, 4.0),
    "106": _mestcode("Overige diersoorten - Vaste mest, 106", 6.0, 4.0),
    "107": _mestcode("Mengsels van dierlijke mest", 5.0, 3.1),
    "108": _mestcode("Dierlijke mest, gehalte onbekend", None, None),
    "110": _mestcode("Champost", None, None, dierlijk=False),
    "111": _mestcode("Compost", None, None, dierlijk=False),
    "112": _mestcode("Zeer schone compost", None, None, dierlijk=False),
    "113": _mestcode("Zuiveringsslib", None, None, dierlijk=False),
    "114": _mestcode("Zuiveringsslib, overig", None, None, dierlijk=False),
    "115": _mestcode("Kunstmest", None, None, dierlijk=False),
    "116": _mestcode("Overige organische meststoffen", None, None, dierlijk=False),
    "117": _mestcode("Champost, overig", None, None, dierlijk=False),
    "120": _mestcode("Mineralenconcentraat", 8.0, 0.3),
}


def beste_jaar(tabel: dict, jaar: int):
    """
    Hoogste jaar <= gegeven jaar waarvoor de tabel een versie heeft.
    Geen geschikt jaar -> ValueError.
    """
    kandidaten = [j for j in tabel if j <= jaar]
    if not kandidaten:
        raise ValueError(f"Geen normtabel beschikbaar voor {jaar}")
    return max(kandidaten)


def stikstofnormen(jaar: int):
    return STIKSTOFNORMEN[beste_jaar(STIKSTOFNORMEN, jaar)]


def fosfaatnormen(jaar: int):
    return FOSFAATNORMEN[beste_jaar(FOSFAATNORMEN, jaar)]


def dierlijke_mest_normen(jaar: int):
    return DIERLIJKE_MEST_NORMEN[beste_jaar(DIERLIJKE_MEST_NORMEN, jaar)]


def standaard_voor_gewas(jaar: int, b_lu_catalogue):
    """Eerste stikstofnorm waarvan de gewascode in b_lu_catalogue_match staat."""
    return next(
        (ns for ns in stikstofnormen(jaar) if b_lu_catalogue in ns["b_lu_catalogue_match"]),
        None
    )
