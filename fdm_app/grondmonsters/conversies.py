# fdm_app/grondmonsters/conversies.py
"""
Omrekeningen tussen bodemparameters. Zonder invoer geven ze None terug,
uitkomsten worden begrensd op een realistisch bereik.
"""

ZANDGRONDEN = ("dekzand", "dalgrond", "duinzand", "loess")


def _begrens(waarde, laag, hoog):
    return max(laag, min(hoog, waarde))


def bereken_organische_koolstof(a_som_loi):
    """Organische stof (%) -> organische koolstof a_c_of (g C/kg)."""
    if not a_som_loi:
        return None
    return _begrens(a_som_loi * 0.5 * 10, 0.1, 600)


def bereken_organische_stof(a_c_of):
    """Organische koolstof (g C/kg) -> organische stof a_som_loi (%)."""
    if not a_c_of:
        return None
    return _begrens(a_c_of / 10 / 0.5, 0.5, 75)


def bereken_cn_ratio(a_c_of, a_n_rt):
    # a_n_rt in mg N/kg
    if not a_c_of or not a_n_rt:
        return None
    return _begrens(a_c_of / (a_n_rt / 1000), 5, 40)


def bereken_dichtheid(a_som_loi, b_soiltype_agr):
    """Bulkdichtheid a_density_sa (g/cm3) uit organische stof en grondsoort."""
    if not a_som_loi or not b_soiltype_agr:
        return None

    if b_soiltype_agr in ZANDGRONDEN:
        dichtheid = 1 / (a_som_loi * 0.02525 + 0.6541)
    else:
        dichtheid = (
            0.00000067 * a_som_loi ** 4
            - 0.00007792 * a_som_loi ** 3
            + 0.00314712 * a_som_loi ** 2
            - 0.06039523 * a_som_loi
            + 1.33932206
        )
    return _begrens(dichtheid, 0.5, 3)
