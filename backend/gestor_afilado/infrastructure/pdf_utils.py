"""
Comprobantes imprimibles en PDF
===============================

Salidas y bajas masivas se entregan impresas junto con las sierras:
- Cabecera con el nombre del servicio
- Bloque de datos de la operación (fecha, sucursal, observaciones)
- Tabla de sierras/afilados incluidos
- Pie con fecha de generación y numeración
"""
from io import BytesIO
from datetime import datetime
from typing import List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

NOMBRE_SERVICIO = "Servicio de Afilado"
COLOR_PRINCIPAL = colors.HexColor('#1a56db')


def crear_comprobante_pdf(
    titulo: str,
    datos: Sequence[Tuple[str, str]],
    headers: List[str],
    rows: List[List[str]],
    footer_text: Optional[str] = None,
) -> bytes:
    """
    Arma el comprobante y devuelve el contenido del PDF.

    Args:
        titulo: p. ej. "SALIDA MASIVA N° 12"
        datos: pares (etiqueta, valor) que se muestran sobre la tabla
        headers: encabezados de la tabla de detalle
        rows: filas de detalle, ya formateadas como texto
        footer_text: texto adicional para el pie de página
    """
    buffer = BytesIO()

    def on_page(canvas_obj, doc):
        canvas_obj.saveState()

        canvas_obj.setFont("Helvetica-Bold", 14)
        canvas_obj.setFillColor(COLOR_PRINCIPAL)
        canvas_obj.drawCentredString(A4[0] / 2.0, A4[1] - 0.8*inch, NOMBRE_SERVICIO)
        canvas_obj.setStrokeColor(COLOR_PRINCIPAL)
        canvas_obj.setLineWidth(2)
        canvas_obj.line(0.5*inch, A4[1] - 1*inch, A4[0] - 0.5*inch, A4[1] - 1*inch)

        canvas_obj.setFont("Helvetica", 8)
        canvas_obj.setFillColor(colors.grey)
        canvas_obj.drawString(0.5*inch, 0.5*inch, f"Generado el {datetime.now().strftime('%d/%m/%Y %H:%M')}")
        if footer_text:
            canvas_obj.drawCentredString(A4[0] / 2.0, 0.5*inch, footer_text)
        canvas_obj.drawRightString(A4[0] - 0.5*inch, 0.5*inch, f"Página {canvas_obj.getPageNumber()}")

        canvas_obj.restoreState()

    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.5*inch,
        leftMargin=0.5*inch,
        topMargin=1.2*inch,
        bottomMargin=1*inch,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'ComprobanteTitulo',
        parent=styles['Heading1'],
        fontSize=16,
        textColor=COLOR_PRINCIPAL,
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold',
    )

    elements = [Paragraph(titulo, title_style)]

    if datos:
        tabla_datos = Table(
            [[Paragraph(f"<b>{etiqueta}</b>", styles['Normal']), Paragraph(escape(valor or "-"), styles['Normal'])] for etiqueta, valor in datos],
            colWidths=[1.8*inch, A4[0] - 1*inch - 1.8*inch],
        )
        tabla_datos.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        elements.append(tabla_datos)
        elements.append(Spacer(1, 0.25*inch))

    col_width = (A4[0] - 1*inch) / len(headers)
    detalle = [[Paragraph(str(h), styles['Normal']) for h in headers]]
    for row in rows:
        detalle.append([Paragraph(escape(str(cell)) if cell is not None else "", styles['Normal']) for cell in row])

    tabla = Table(detalle, colWidths=[col_width] * len(headers), repeatRows=1)
    tabla.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#366092')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('GRID', (0, 0), (-1, -1), 1, colors.grey),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f9fafb')]),
    ]))
    elements.append(tabla)
    elements.append(Spacer(1, 0.2*inch))
    elements.append(Paragraph(f"Total: {len(rows)}", styles['Normal']))

    doc.build(elements, onFirstPage=on_page, onLaterPages=on_page)
    return buffer.getvalue()
