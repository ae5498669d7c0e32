# fdm_app/gebruiksnormen/invoer.py
"""Verzamelt uit de database wat de normberekening per perceel nodig heeft."""
from datetime import date

from fdm_app.bedrijven.bedrijfsstatus import heeft_beweidingsintentie, heeft_derogatie, is_bio_gecertificeerd
from fdm_app.bemestingen.bemestingdata import lijst_bemestingen
from fdm_app.grondmonsters.bodemdata import bodemwaarden, get_huidige_bodemdata
from fdm_app.percelen.perceeldata import get_perceel, lijst_percelen
from fdm_app.teelten.teeltplan import lijst_teelten


def bedrijfsstatus(c, bedrijf_id, jaar: int) -> dict:
    return {
        "is_derogatie_bedrijf": heeft_derogatie(c, bedrijf_id, jaar),
        "has_grazing_intention": heeft_beweidingsintentie(c, bedrijf_id, jaar),
        "has_organic_certification": is_bio_gecertificeerd(c, bedrijf_id, date(jaar, 12, 31)),
    }


def meststoffen_uit_bemestingen(bemestingen):
    """Unieke catalogusmeststoffen van een lijst bemestingen."""
    meststoffen = {}
    for b in bemestingen:
        meststoffen.setdefault(b["p_id_catalogue"], {
            "p_id_catalogue": b["p_id_catalogue"],
            "p_type_rvo": b.get("p_type_rvo"),
            "p_n_rt": b.get("p_n_rt"),
            "p_p_rt": b.get("p_p_rt"),
        })
    return list(meststoffen.values())


def invoer_perceel(c, perceel: dict, jaar: int, status: dict) -> dict:
    """
    Teelten van dit en vorig jaar (voor subtypes en korting), bemestingen van
    dit jaar en de bodemdata die aan het eind van het jaar bekend is.
    """
    begin, einde = date(jaar, 1, 1), date(jaar, 12, 31)
    teelten = lijst_teelten(c, perceel["b_id"], date(jaar - 1, 1, 1), einde)
    bemestingen = [dict(b) for b in lijst_bemestingen(c, perceel["b_id"], begin, einde)]
    bodem = bodemwaarden(get_huidige_bodemdata(c, perceel["b_id"], einde))

    return {
        "jaar": jaar,
        "perceel": perceel,
        "bedrijf": status,
        "teelten": teelten,
        "bodem": {"a_p_al": bodem.get("a_p_al"), "a_p_cc": bodem.get("a_p_cc")},
        "bemestingen": bemestingen,
        "meststoffen": meststoffen_uit_bemestingen(bemestingen),
    }


def invoer_voor_perceel(c, perceel_id, jaar: int):
    perceel = get_perceel(c, perceel_id)
    if not perceel:
        return None
    return invoer_perceel(c, perceel, jaar, bedrijfsstatus(c, perceel["b_id_farm"], jaar))


def invoer_voor_bedrijf(c, bedrijf_id, jaar: int):
    status = bedrijfsstatus(c, bedrijf_id, jaar)
    return [
        invoer_perceel(c, perceel, jaar, status)
        for perceel in lijst_percelen(c, bedrijf_id, date(jaar, 1, 1), date(jaar, 12, 31))
    ]
