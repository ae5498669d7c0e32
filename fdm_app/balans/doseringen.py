# fdm_app/balans/doseringen.py
"""
Doseringen (kg/ha) per bemesting en opgeteld, uit hoeveelheid x gehalte.
Hoofd- en secundaire elementen staan in g/kg, sporenelementen in mg/kg.
"""

# (dosering, gehalte, deler)
DOSERINGEN = (
    ("p_dose_n", "p_n_rt", 1000),
    ("p_dose_p", "p_p_rt", 1000),
    ("p_dose_k", "p_k_rt", 1000),
    ("p_dose_eoc", "p_eoc", 1000),
    ("p_dose_s", "p_s_rt", 1000),
    ("p_dose_mg", "p_mg_rt", 1000),
    ("p_dose_ca", "p_ca_rt", 1000),
    ("p_dose_na", "p_na_rt", 1_000_000),
    ("p_dose_cu", "p_cu_rt", 1_000_000),
    ("p_dose_zn", "p_zn_rt", 1_000_000),
    ("p_dose_co", "p_co_rt", 1_000_000),
    ("p_dose_mn", "p_mn_rt", 1_000_000),
    ("p_dose_mo", "p_mo_rt", 1_000_000),
    ("p_dose_b", "p_b_rt", 1_000_000),
)

DOSERING_KEYS = ("p_dose_n", "p_dose_nw") + tuple(d for d, _, _ in DOSERINGEN[1:])


def lege_dosering() -> dict:
    return {k: 0.0 for k in DOSERING_KEYS}


def bereken_dosering(bemestingen, meststoffen=None) -> dict:
    """
    bemestingen: [{p_app_id, p_id_catalogue, p_app_amount, ...}]
    meststoffen: [{p_id_catalogue, p_n_rt, ...}]; zonder lijst worden de
    gehaltes uit de bemestingsrij zelf gebruikt.

    Geeft {"dose": {...}, "applications": [{p_app_id, ...}]}.
    """
    if any((b.get("p_app_amount") or 0) < 0 for b in bemestingen):
        raise ValueError("Application amounts must be non-negative")

    bronnen = meststoffen if meststoffen is not None else bemestingen
    for m in bronnen:
        for _, gehalte, _ in DOSERINGEN:
            if (m.get(gehalte) or 0) < 0:
                raise ValueError("Nutrient rates must be non-negative")

    per_catalogus = None
    if meststoffen is not None:
        per_catalogus = {m["p_id_catalogue"]: m for m in meststoffen}

    totaal = lege_dosering()
    per_bemesting = []
    for b in bemestingen:
        if per_catalogus is None:
            meststof = b
        else:
            meststof = per_catalogus.get(b.get("p_id_catalogue"))
            if meststof is None:
                raise ValueError(
                    f"Fertilizer {b.get('p_id_catalogue')} not found for application {b.get('p_app_id')}"
                )

        hoeveelheid = b.get("p_app_amount") or 0
        dosering = lege_dosering()
        for key, gehalte, deler in DOSERINGEN:
            dosering[key] = hoeveelheid * ((meststof.get(gehalte) or 0) / deler)
        p_n_wc = meststof.get("p_n_wc")
        dosering["p_dose_nw"] = dosering["p_dose_n"] * (1 if p_n_wc is None else p_n_wc)

        for key in DOSERING_KEYS:
            totaal[key] += dosering[key]
        per_bemesting.append({"p_app_id": b.get("p_app_id"), **dosering})

    return {"dose": totaal, "applications": per_bemesting}
