# fdm_app/bedrijven/bedrijfsstatus.py
"""
Status van een bedrijf per jaar: derogatie, beweidingsintentie
en biologische certificering. Functies krijgen een (dict-)cursor mee.
"""
import re
import uuid

TRACES_REGEX = re.compile(r"^NL-BIO-\d{2}\.\d{3}-\d{7}\.\d{4}\.\d{3}$")
SKAL_REGEX = re.compile(r"^\d{6}$")

DEROGATIE_JAAR_MIN = 2006
DEROGATIE_JAAR_MAX = 2025


def is_geldig_traces_nummer(nummer) -> bool:
    return bool(nummer) and TRACES_REGEX.match(str(nummer).strip()) is not None


def is_geldig_skal_nummer(nummer) -> bool:
    return bool(nummer) and SKAL_REGEX.match(str(nummer).strip()) is not None


# ---------------- Derogatie ----------------

def voeg_derogatie_toe(c, bedrijf_id, jaar: int) -> str:
    if jaar < DEROGATIE_JAAR_MIN or jaar > DEROGATIE_JAAR_MAX:
        raise ValueError(
            f"Derogatiejaar moet tussen {DEROGATIE_JAAR_MIN} en {DEROGATIE_JAAR_MAX} liggen."
        )

    c.execute(
        "SELECT 1 FROM derogaties WHERE bedrijf_id=%s AND jaar=%s",
        (bedrijf_id, jaar)
    )
    if c.fetchone():
        raise ValueError("Derogatie is al verleend voor dit bedrijf en jaar.")

    derogatie_id = str(uuid.uuid4())
    c.execute(
        "INSERT INTO derogaties (id, bedrijf_id, jaar) VALUES (%s, %s, %s)",
        (derogatie_id, bedrijf_id, jaar)
    )
    return derogatie_id


def lijst_derogaties(c, bedrijf_id):
    c.execute(
        """
        SELECT id AS b_id_derogation, jaar AS b_derogation_year
        FROM derogaties
        WHERE bedrijf_id=%s
        ORDER BY jaar DESC
        """,
        (bedrijf_id,)
    )
    return c.fetchall()


def heeft_derogatie(c, bedrijf_id, jaar: int) -> bool:
    c.execute(
        "SELECT 1 FROM derogaties WHERE bedrijf_id=%s AND jaar=%s",
        (bedrijf_id, jaar)
    )
    return c.fetchone() is not None


# ---------------- Beweidingsintentie ----------------

def zet_beweidingsintentie(c, bedrijf_id, jaar: int, beweiden: bool):
    c.execute(
        """
        INSERT INTO beweidingsintenties (bedrijf_id, jaar, beweiden)
        VALUES (%s, %s, %s)
        ON CONFLICT (bedrijf_id, jaar) DO UPDATE SET beweiden = EXCLUDED.beweiden
        """,
        (bedrijf_id, jaar, 1 if beweiden else 0)
    )


def verwijder_beweidingsintentie(c, bedrijf_id, jaar: int):
    c.execute(
        "DELETE FROM beweidingsintenties WHERE bedrijf_id=%s AND jaar=%s",
        (bedrijf_id, jaar)
    )


def heeft_beweidingsintentie(c, bedrijf_id, jaar: int) -> bool:
    # Geen registratie -> geen beweiding
    c.execute(
        "SELECT beweiden FROM beweidingsintenties WHERE bedrijf_id=%s AND jaar=%s",
        (bedrijf_id, jaar)
    )
    row = c.fetchone()
    if not row:
        return False
    return int(row["beweiden"] or 0) == 1


def lijst_beweidingsintenties(c, bedrijf_id):
    c.execute(
        """
        SELECT jaar AS b_grazing_intention_year, beweiden = 1 AS b_grazing_intention
        FROM beweidingsintenties
        WHERE bedrijf_id=%s
        ORDER BY jaar DESC
        """,
        (bedrijf_id,)
    )
    return c.fetchall()


# ---------------- Biologische certificering ----------------

def voeg_bio_certificering_toe(c, bedrijf_id, traces, skal, uitgegeven, verloopt) -> str:
    if traces and not is_geldig_traces_nummer(traces):
        raise ValueError("Ongeldig TRACES-documentnummer.")
    if skal and not is_geldig_skal_nummer(skal):
        raise ValueError("Ongeldig SKAL-nummer.")
    if uitgegeven is None or verloopt is None:
        raise ValueError("Uitgifte- en vervaldatum zijn verplicht.")
    if uitgegeven >= verloopt:
        raise ValueError("Uitgiftedatum moet voor de vervaldatum liggen.")

    c.execute(
        """
        SELECT 1 FROM bio_certificeringen
        WHERE bedrijf_id=%s AND (traces=%s OR skal=%s)
        """,
        (bedrijf_id, traces, skal)
    )
    if c.fetchone():
        raise ValueError("Er bestaat al een certificering met dit TRACES/SKAL-nummer voor dit bedrijf.")

    cert_id = str(uuid.uuid4())
    c.execute(
        """
        INSERT INTO bio_certificeringen (id, bedrijf_id, traces, skal, uitgegeven, verloopt)
        VALUES (%s, %s, %s, %s, %s, %s)
        """,
        (cert_id, bedrijf_id, traces or None, skal or None, uitgegeven, verloopt)
    )
    return cert_id


_CERT_SELECT = """
    SELECT id AS b_id_organic, traces AS b_organic_traces, skal AS b_organic_skal,
           uitgegeven AS b_organic_issued, verloopt AS b_organic_expires
    FROM bio_certificeringen
"""


def lijst_bio_certificeringen(c, bedrijf_id):
    c.execute(_CERT_SELECT + " WHERE bedrijf_id=%s ORDER BY uitgegeven DESC", (bedrijf_id,))
    return c.fetchall()


def get_bio_certificering(c, bedrijf_id, cert_id):
    c.execute(_CERT_SELECT + " WHERE bedrijf_id=%s AND id=%s", (bedrijf_id, cert_id))
    return c.fetchone()


def is_bio_gecertificeerd(c, bedrijf_id, peildatum) -> bool:
    """Geldig als de peildatum binnen uitgifte t/m verval valt."""
    c.execute(
        """
        SELECT 1 FROM bio_certificeringen
        WHERE bedrijf_id=%s AND uitgegeven <= %s AND verloopt >= %s
        LIMIT 1
        """,
        (bedrijf_id, peildatum, peildatum)
    )
    return c.fetchone() is not None
