# report_html.py
import datetime
import html
import logging
import os
import re
from typing import Iterable, List, Optional

from errors import ValidationError
from history import TYPE_LABELS, filter_by_date_range, format_date, status_label
from models import AdvisoryRequest, Professor

logger = logging.getLogger(__name__)

UNIVERSITY_NAME = "Universidad Politécnica de Chiapas"
BLANK_PERIOD = "_________________________"


# ================== HTML TEMPLATE ==================

HTML_TEMPLATE = r"""<!DOCTYPE html>
<html lang="es">
<head>
    <meta charset="UTF-8">
    <title>Historial de Asesorías - {{PROFESSOR}}</title>
    <style>
        body {
            font-family: Arial, sans-serif;
            margin: 24px;
        }
        h1 {
            font-size: 20px;
            margin-bottom: 4px;
        }
        h2 {
            font-size: 17px;
            margin: 4px 0 10px 0;
        }
        .info p {
            margin: 2px 0;
            font-size: 13px;
        }
        table {
            border-collapse: collapse;
            width: 100%;
            margin-top: 14px;
            font-size: 11px;
        }
        th, td {
            border: 1px solid #ccc;
            padding: 4px;
            vertical-align: top;
        }
        th {
            background: #2980b9;
            color: #fff;
        }
        td.empty {
            text-align: center;
            color: #777;
        }
        .signature {
            margin: 80px auto 0 auto;
            width: 320px;
            text-align: center;
        }
        .signature .line {
            border-top: 1px solid #000;
            margin-bottom: 6px;
        }
        @media print {
            body { margin: 0; }
        }
    </style>
</head>
<body>
    <h1>{{UNIVERSITY}}</h1>
    <h2>Historial de Asesorías del Profesor</h2>
    <div class="info">
        <p id="period">Periodo que corresponde: {{PERIOD}}</p>
        <p id="professor">Profesor: {{PROFESSOR}}</p>
        <p id="generated">Fecha de generación: {{GENERATED}}</p>
        {{RANGE}}
    </div>
    <table id="history">
        <thead>
            <tr>
                <th>Fecha</th>
                <th>Estudiante</th>
                <th>Matrícula</th>
                <th>Tipo</th>
                <th>Materia</th>
                <th>Tema</th>
                <th>Estado</th>
                <th>Observaciones</th>
            </tr>
        </thead>
        <tbody>
{{ROWS}}
        </tbody>
    </table>
    <div class="signature">
        <div class="line"></div>
        <span>Firma del Profesor</span>
    </div>
</body>
</html>
"""


def _cell(value) -> str:
    return f"<td>{html.escape(str(value))}</td>"


def _row(r: AdvisoryRequest) -> str:
    cells = [
        format_date(r.date),
        r.student_name,
        r.student_matricula,
        TYPE_LABELS[r.type],
        r.subject,
        r.topic,
        status_label(r.status),
        r.observations or "-",
    ]
    return "            <tr>" + "".join(_cell(c) for c in cells) + "</tr>"


def _safe_name(name: str) -> str:
    """Espacios y separadores de ruta -> '_'."""
    return re.sub(r"[\s/\\]", "_", name.strip())


def report_filename(professor_name: str) -> str:
    return f"Historial_Asesorias_{_safe_name(professor_name)}.html"


def render_history_report(history: Iterable[AdvisoryRequest], professor_name: str,
                          start: Optional[datetime.date] = None,
                          end: Optional[datetime.date] = None,
                          period: str = "",
                          generated: Optional[datetime.date] = None) -> str:
    """Documento HTML imprimible con el historial del profesor."""
    rows: List[AdvisoryRequest] = filter_by_date_range(history, start, end)
    generated = generated or datetime.date.today()

    if rows:
        rows_html = "\n".join(_row(r) for r in rows)
    else:
        rows_html = '            <tr><td class="empty" colspan="8">Sin asesorías en el periodo</td></tr>'

    range_html = ""
    if start or end:
        s = format_date(start) if start else "..."
        e = format_date(end) if end else "..."
        range_html = f'<p id="range">Periodo del reporte: {s} al {e}</p>'

    out = HTML_TEMPLATE.replace("{{UNIVERSITY}}", html.escape(UNIVERSITY_NAME))
    out = out.replace("{{PERIOD}}", html.escape(period.strip() or BLANK_PERIOD))
    out = out.replace("{{PROFESSOR}}", html.escape(professor_name))
    out = out.replace("{{GENERATED}}", format_date(generated))
    out = out.replace("{{RANGE}}", range_html)
    out = out.replace("{{ROWS}}", rows_html)
    return out


def build_history_report(history: Iterable[AdvisoryRequest], professor_name: str,
                         output_dir: str = "reports",
                         start: Optional[datetime.date] = None,
                         end: Optional[datetime.date] = None,
                         period: str = "") -> str:
    """Escribe el reporte en output_dir y devuelve la ruta."""
    if start and end and start > end:
        raise ValidationError("La fecha de inicio debe ser anterior a la fecha de fin")

    content = render_history_report(history, professor_name, start, end, period)

    os.makedirs(output_dir, exist_ok=True)
    out_path = os.path.join(output_dir, report_filename(professor_name))
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(content)

    logger.info("Reporte HTML generado: %s", out_path)
    return out_path


# ================== REPORTE DEL SERVIDOR (PDF) ==================

def pdf_filename(start: datetime.date, end: datetime.date, professor_name: Optional[str] = None) -> str:
    who = _safe_name(professor_name) if professor_name else "todos-profesores"
    return f"reporte-asesorias-{who}-{start.isoformat()}-{end.isoformat()}.pdf"


def download_advisory_report(api, start: Optional[datetime.date], end: Optional[datetime.date],
                             professor: Optional[Professor] = None,
                             output_dir: str = "reports") -> str:
    """Pide el PDF al backend y lo guarda tal cual en output_dir."""
    if not start or not end:
        raise ValidationError("Por favor selecciona las fechas de inicio y fin")
    if start > end:
        raise ValidationError("La fecha de inicio debe ser anterior a la fecha de fin")

    content = api.advisory_report(start, end, professor.id if professor else None)

    os.makedirs(output_dir, exist_ok=True)
    out_path = os.path.join(output_dir, pdf_filename(start, end, professor.name if professor else None))
    with open(out_path, "wb") as f:
        f.write(content)

    logger.info("Reporte PDF guardado: %s (%d bytes)", out_path, len(content))
    return out_path
