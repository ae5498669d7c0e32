# fdm_app/rapportage/routes.py
from __future__ import annotations
from flask import Blueprint, request, jsonify, send_file, make_response
from datetime import date
import io
import logging

import xlsxwriter
from fpdf import FPDF

import fdm_app.models.database_beheer as db
from fdm_app.gebruikers.auth_utils import login_required, effective_user_id
from fdm_app.gebruiksnormen.bedrijfsniveau import bereken_bedrijf
from fdm_app.gebruiksnormen.invoer import invoer_voor_bedrijf


rapportage_bp = Blueprint(
    "rapportage",
    __name__,
    url_prefix="/rapportage"
)

logger = logging.getLogger(__name__)

# (sleutel, kop) per kolom, in de volgorde van de export
KOLOMMEN = (
    ("bedrijf_naam", "Bedrijf"),
    ("jaar", "Jaar"),
    ("n_norm", "N ruimte"),
    ("n_gebruikt", "N gebruikt"),
    ("n_over", "N over"),
    ("n_af_te_voeren", "N af te voeren"),
    ("dierlijk_norm", "N dierl. ruimte"),
    ("dierlijk_gebruikt", "N dierl. gebruikt"),
    ("dierlijk_over", "N dierl. over"),
    ("dierlijk_af_te_voeren", "N dierl. af te voeren"),
    ("p_norm", "P ruimte"),
    ("p_gebruikt", "P gebruikt"),
    ("p_over", "P over"),
    ("p_af_te_voeren", "P af te voeren"),
)


# ---------------- Helper functions ----------------

def _get_bedrijven(user_id):
    conn, cur = db.get_dict_cursor()
    try:
        cur.execute("""
            SELECT id, naam, plaats
            FROM bedrijven
            WHERE user_id = %s
            ORDER BY naam
        """, (user_id,))
        return cur.fetchall()
    finally:
        conn.close()


def rapport_rij(bedrijf_naam, jaar, ruimte: dict) -> dict:
    """Eén rapportregel uit plaatsingsruimte() van een bedrijf (kg)."""
    return {
        "bedrijf_naam": bedrijf_naam,
        "jaar": jaar,
        # N
        "n_norm": ruimte["nitrogen"]["norm"],
        "n_gebruikt": ruimte["nitrogen"]["filling"],
        "n_over": ruimte["nitrogen"]["room"],
        "n_af_te_voeren": ruimte["nitrogen"]["surplus"],
        # Dierlijke mest, ruimte al begrensd op de N-ruimte
        "dierlijk_norm": ruimte["manure"]["norm"],
        "dierlijk_gebruikt": ruimte["manure"]["filling"],
        "dierlijk_over": ruimte["manure"]["room"],
        "dierlijk_af_te_voeren": ruimte["manure"]["surplus"],
        # P
        "p_norm": ruimte["phosphate"]["norm"],
        "p_gebruikt": ruimte["phosphate"]["filling"],
        "p_over": ruimte["phosphate"]["room"],
        "p_af_te_voeren": ruimte["phosphate"]["surplus"],
    }


def _rapport_rijen(bedrijven, jaar):
    rows, fouten = [], []
    conn, cur = db.get_dict_cursor()
    try:
        for bedrijf in bedrijven:
            resultaat = bereken_bedrijf(invoer_voor_bedrijf(cur, bedrijf["id"], jaar))
            rows.append(rapport_rij(bedrijf["naam"], jaar, resultaat["farm"]["room"]))
            for fout in resultaat["errors"]:
                fouten.append({"bedrijf_naam": bedrijf["naam"], **fout})
    finally:
        conn.close()
    return rows, fouten


def export_excel(rows) -> io.BytesIO:
    output = io.BytesIO()
    wb = xlsxwriter.Workbook(output, {"in_memory": True})
    ws = wb.add_worksheet("Rapport")
    vet = wb.add_format({"bold": True})

    for c, (_, kop) in enumerate(KOLOMMEN):
        ws.write(0, c, kop, vet)

    for r_i, r in enumerate(rows, start=1):
        for c, (sleutel, _) in enumerate(KOLOMMEN):
            ws.write(r_i, c, r[sleutel])

    wb.close()
    output.seek(0)
    return output


def export_pdf(rows, jaar) -> bytes:
    """Liggende A4 met per bedrijf de ruimte en het gebruik (kg)."""
    pdf = FPDF(orientation="L", format="A4")
    pdf.add_page()
    pdf.set_font("Helvetica", "B", 14)
    pdf.cell(0, 10, f"Rapportage gebruiksruimte {jaar}", new_x="LMARGIN", new_y="NEXT")

    breedte = (pdf.w - pdf.l_margin - pdf.r_margin) / len(KOLOMMEN)
    pdf.set_font("Helvetica", "B", 7)
    for _, kop in KOLOMMEN:
        pdf.cell(breedte, 8, kop, border=1)
    pdf.ln()

    pdf.set_font("Helvetica", "", 7)
    for r in rows:
        for sleutel, _ in KOLOMMEN:
            pdf.cell(breedte, 7, str(r[sleutel] if r[sleutel] is not None else ""), border=1)
        pdf.ln()

    return bytes(pdf.output())


# ---------------- ROUTES ----------------

@rapportage_bp.route("/", methods=["GET"])
@login_required
def rapportage():
    user_id = effective_user_id()
    bedrijven = _get_bedrijven(user_id)

    jaar = request.args.get("jaar", type=int) or date.today().year

    # Zonder selectie alle bedrijven van de gebruiker
    geselecteerde_bedrijf_ids = request.args.getlist("bedrijf_ids")
    if geselecteerde_bedrijf_ids:
        bedrijven = [b for b in bedrijven if str(b["id"]) in geselecteerde_bedrijf_ids]

    rows, fouten = _rapport_rijen(bedrijven, jaar)
    for fout in fouten:
        logger.warning(f"Rapportage {jaar}, {fout['bedrijf_naam']} perceel {fout['b_id']}: {fout['message']}")

    action = request.args.get("action", "view")
    if action == "excel":
        return send_file(
            export_excel(rows),
            as_attachment=True,
            download_name=f"Rapportage Gebruiksruimte {jaar}.xlsx",
            mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
    if action == "pdf":
        response = make_response(export_pdf(rows, jaar))
        response.headers["Content-Type"] = "application/pdf"
        response.headers["Content-Disposition"] = f"attachment; filename=rapportage_{jaar}.pdf"
        return response

    return jsonify({"jaar": jaar, "rows": rows, "errors": fouten})
