# fdm_app/models/database_beheer.py

import os

import psycopg2
from psycopg2.extras import RealDictCursor


# Numerieke bodemparameters van een grondmonster (kolomnamen = sleutels in de API)
BODEM_PARAMETERS_NUMERIEK = (
    "a_al_ox", "a_c_of", "a_ca_co", "a_ca_co_po", "a_caco3_if", "a_cec_co",
    "a_clay_mi", "a_cn_fr", "a_com_fr", "a_cu_cc", "a_density_sa", "a_fe_ox",
    "a_k_cc", "a_k_co", "a_k_co_po", "a_mg_cc", "a_mg_co", "a_mg_co_po",
    "a_n_pmn", "a_n_rt", "a_nh4_cc", "a_nmin_cc", "a_no3_cc", "a_p_al",
    "a_p_cc", "a_p_ox", "a_p_rt", "a_p_sg", "a_p_wa", "a_ph_cc", "a_s_rt",
    "a_sand_mi", "a_silt_mi", "a_som_loi", "a_zn_cc",
)
BODEM_PARAMETERS_TEKST = ("b_gwl_class", "b_soiltype_agr")
BODEM_PARAMETERS = BODEM_PARAMETERS_NUMERIEK + BODEM_PARAMETERS_TEKST

# Gehaltes en eigenschappen van een meststof uit de catalogus
MESTSTOF_GEHALTES = (
    "p_dm", "p_om", "p_eom", "p_eoc", "p_n_rt", "p_n_wc", "p_nh4_rt",
    "p_no3_rt", "p_p_rt", "p_k_rt", "p_s_rt", "p_mg_rt", "p_ca_rt",
    "p_na_rt", "p_cu_rt", "p_zn_rt", "p_co_rt", "p_mn_rt", "p_mo_rt",
    "p_b_rt", "p_ef_nh3",
)

GEWAS_GETALLEN = (
    "b_lu_yield", "b_lu_hi", "b_lu_n_harvestable", "b_lu_n_residue",
    "b_n_fixation", "b_lu_eom", "b_lu_eom_residues",
)


def get_database_url():
    # Pas bij de eerste verbinding controleren, zodat de app zonder database importeerbaar is
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError(
            "DATABASE_URL is niet gezet. "
            "Zet deze als environment variable (bijv. in .env)."
        )
    return database_url


def get_connection():
    """
    Maak een nieuwe PostgreSQL-verbinding.
    In de rest van de code gebruik je deze via db.get_connection()
    of db.get_dict_cursor().
    """
    return psycopg2.connect(get_database_url())


def get_dict_cursor():
    """
    Handige helper als je rows als dict wilt gebruiken:
    conn, cur = db.get_dict_cursor()
    cur.execute(...)
    rows = cur.fetchall()  # list van dicts
    """
    conn = get_connection()
    cur = conn.cursor(cursor_factory=RealDictCursor)
    return conn, cur


def init_db():
    """
    Maakt alle tabellen aan als ze nog niet bestaan.
    Draait één keer bij startup (in de app factory).
    """
    conn = get_connection()
    conn.autocommit = True
    c = conn.cursor()

    # Users eerst, omdat andere tabellen ernaar refereren
    c.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            username TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            email TEXT,
            naam TEXT,
            is_admin INTEGER DEFAULT 0
        )
        """
    )

    c.execute(
        """
        CREATE TABLE IF NOT EXISTS password_reset_tokens (
            token TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            created_at TEXT NOT NULL,     -- ISO8601
            expires_at TEXT NOT NULL,     -- ISO8601
            used INTEGER NOT NULL DEFAULT 0,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        )
        """
    )

    # Bedrijven (b_id_farm)
    c.execute(
        """
        CREATE TABLE IF NOT EXISTS bedrijven (
            id TEXT PRIMARY KEY,
            naam TEXT NOT NULL,
            kvk_nummer TEXT,                  -- b_businessid_farm
            adres TEXT,
            postcode TEXT,
            plaats TEXT,
            user_id TEXT NOT NULL,
            FOREIGN KEY (user_id) REFERENCES users(id)
        )
        """
    )

    c.execute(
        """
        CREATE TABLE IF NOT EXISTS derogaties (
            id TEXT PRIMARY KEY,
            bedrijf_id TEXT NOT NULL,
            jaar INTEGER NOT NULL,
            UNIQUE (bedrijf_id, jaar),
            FOREIGN KEY (bedrijf_id) REFERENCES bedrijven(id) ON DELETE CASCADE
        )
        """
    )

    c.execute(
        """
        CREATE TABLE IF NOT EXISTS beweidingsintenties (
            bedrijf_id TEXT NOT NULL,
            jaar INTEGER NOT NULL,
            beweiden INTEGER NOT NULL DEFAULT 0,   -- 0/1
            PRIMARY KEY (bedrijf_id, jaar),
            FOREIGN KEY (bedrijf_id) REFERENCES bedrijven(id) ON DELETE CASCADE
        )
        """
    )

    c.execute(
        """
        CREATE TABLE IF NOT EXISTS bio_certificeringen (
            id TEXT PRIMARY KEY,
            bedrijf_id TEXT NOT NULL,
            traces TEXT,
            skal TEXT,
            uitgegeven DATE NOT NULL,
            verloopt DATE NOT NULL,
            FOREIGN KEY (bedrijf_id) REFERENCES bedrijven(id) ON DELETE CASCADE
        )
        """
    )

    # Percelen (b_id)
    c.execute(
        """
        CREATE TABLE IF NOT EXISTS percelen (
            id TEXT PRIMARY KEY,
            bedrijf_id TEXT NOT NULL,
            perceelnaam TEXT NOT NULL,
            geometry_geojson TEXT NOT NULL,      -- GeoJSON Polygon (WGS84)
            oppervlakte REAL,                    -- ha, berekend uit de geometrie
            latitude REAL,                       -- centroid
            longitude REAL,
            begin DATE NOT NULL,                 -- b_start
            eind DATE,                           -- b_end
            verwervingswijze TEXT NOT NULL DEFAULT 'unknown',
            bron_id TEXT,                        -- b_id_source (bijv. PDOK id)
            bufferstrook INTEGER NOT NULL DEFAULT 0,
            regio TEXT,                          -- klei, veen, loess, zand_nwc, zand_zuid
            nv_gebied INTEGER NOT NULL DEFAULT 0,
            grondwaterbeschermingsgebied INTEGER NOT NULL DEFAULT 0,
            natura2000 INTEGER NOT NULL DEFAULT 0,
            derogatievrije_zone INTEGER NOT NULL DEFAULT 0,
            n_depositie REAL,                    -- kg N/ha/jaar
            FOREIGN KEY (bedrijf_id) REFERENCES bedrijven(id) ON DELETE CASCADE
        )
        """
    )

    # Gewascatalogus
    c.execute(
        """
        CREATE TABLE IF NOT EXISTS gewassen_catalogus (
            b_lu_catalogue TEXT PRIMARY KEY,
            b_lu_source TEXT NOT NULL,
            b_lu_name TEXT NOT NULL,
            b_lu_name_en TEXT,
            b_lu_harvestable TEXT NOT NULL DEFAULT 'once',
            b_lu_hcat3 TEXT,
            b_lu_hcat3_name TEXT,
            b_lu_croprotation TEXT,
            b_lu_yield REAL,
            b_lu_hi REAL,
            b_lu_n_harvestable REAL,
            b_lu_n_residue REAL,
            b_n_fixation REAL,
            b_lu_eom REAL,
            b_lu_eom_residues REAL,
            b_lu_rest_oravib INTEGER DEFAULT 0,
            b_lu_variety_options TEXT,           -- JSON lijst
            b_lu_start_default TEXT,             -- MM-DD
            b_date_harvest_default TEXT          -- MM-DD
        )
        """
    )

    # Teelten (b_lu)
    c.execute(
        """
        CREATE TABLE IF NOT EXISTS teelten (
            id TEXT PRIMARY KEY,
            perceel_id TEXT NOT NULL,
            b_lu_catalogue TEXT NOT NULL,
            b_lu_start DATE NOT NULL,
            b_lu_end DATE,
            m_cropresidue INTEGER,
            b_lu_variety TEXT,
            FOREIGN KEY (perceel_id) REFERENCES percelen(id) ON DELETE CASCADE,
            FOREIGN KEY (b_lu_catalogue) REFERENCES gewassen_catalogus(b_lu_catalogue)
        )
        """
    )

    c.execute(
        """
        CREATE TABLE IF NOT EXISTS oogsten (
            id TEXT PRIMARY KEY,
            teelt_id TEXT NOT NULL,
            b_lu_harvest_date DATE NOT NULL,
            b_lu_yield REAL,
            b_lu_n_harvestable REAL,
            FOREIGN KEY (teelt_id) REFERENCES teelten(id) ON DELETE CASCADE
        )
        """
    )

    # Meststoffencatalogus
    c.execute(
        f"""
        CREATE TABLE IF NOT EXISTS meststoffen_catalogus (
            p_id_catalogue TEXT PRIMARY KEY,
            p_source TEXT NOT NULL,
            p_name_nl TEXT NOT NULL,
            p_type TEXT,                         -- mineral, manure, compost, other
            p_type_rvo TEXT,
            {", ".join(f"{k} REAL" for k in MESTSTOF_GEHALTES)},
            p_app_method_options TEXT            -- JSON lijst
        )
        """
    )

    # Meststoffen op bedrijfsniveau (p_id)
    c.execute(
        """
        CREATE TABLE IF NOT EXISTS bedrijf_meststoffen (
            id TEXT PRIMARY KEY,
            bedrijf_id TEXT NOT NULL,
            p_id_catalogue TEXT NOT NULL,
            p_acquiring_amount REAL,
            p_acquiring_date DATE,
            FOREIGN KEY (bedrijf_id) REFERENCES bedrijven(id) ON DELETE CASCADE,
            FOREIGN KEY (p_id_catalogue) REFERENCES meststoffen_catalogus(p_id_catalogue)
        )
        """
    )

    # Bemestingen (p_app_id)
    c.execute(
        """
        CREATE TABLE IF NOT EXISTS bemestingen (
            id TEXT PRIMARY KEY,
            perceel_id TEXT NOT NULL,
            meststof_id TEXT NOT NULL,
            p_app_amount REAL NOT NULL,
            p_app_method TEXT,
            p_app_date DATE NOT NULL,
            FOREIGN KEY (perceel_id) REFERENCES percelen(id) ON DELETE CASCADE,
            FOREIGN KEY (meststof_id) REFERENCES bedrijf_meststoffen(id) ON DELETE CASCADE
        )
        """
    )

    # Grondmonsters (a_id)
    c.execute(
        f"""
        CREATE TABLE IF NOT EXISTS grondmonsters (
            id TEXT PRIMARY KEY,
            perceel_id TEXT NOT NULL,
            a_source TEXT NOT NULL DEFAULT 'other',
            a_date DATE,
            b_sampling_date DATE,
            a_depth_upper REAL NOT NULL DEFAULT 0,
            a_depth_lower REAL,
            {", ".join(f"{k} REAL" for k in BODEM_PARAMETERS_NUMERIEK)},
            b_gwl_class TEXT,
            b_soiltype_agr TEXT,
            FOREIGN KEY (perceel_id) REFERENCES percelen(id) ON DELETE CASCADE
        )
        """
    )

    conn.close()
