"""
Presupuesto (quote) export.

Builds the quote PDF for a reservation with reportlab, uploads it to B2 at a
fixed per-reservation key (overwriting any previous export) and stores that
key on the reservation.
"""

import io
import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor, black, white
from reportlab.lib.enums import TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventos.database.errors import EventosError, NotFoundError, StorageError
from eventos.database.repositories.reserva_repository import ReservaRepository
from eventos.services import b2_storage
from eventos.services.base import BaseService
from eventos.utils import get_app_timezone, to_decimal, to_int

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

Uploader = Callable[[bytes, str, str], Tuple[bool, str, Optional[str]]]


def formatear_moneda(value: Any) -> str:
    """es-AR currency: $ 1.234,50"""
    d = (to_decimal(value, Decimal("0")) or Decimal("0")).quantize(CENTS, rounding=ROUND_HALF_UP)
    s = f"{d:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"$ {s}"


def calcular_totales(total_salon: Any, servicios: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Room subtotal, per-line subtotals and grand total.

    `servicios` items need `precio` and `cantidad`; each gets a `subtotal`.
    """
    salon = to_decimal(total_salon, Decimal("0")) or Decimal("0")
    lineas: List[Dict[str, Any]] = []
    total_servicios = Decimal("0")
    for s in servicios or []:
        unit = to_decimal(s.get("precio"), Decimal("0")) or Decimal("0")
        cantidad = to_int(s.get("cantidad"), 0) or 0
        subtotal = unit * cantidad
        total_servicios += subtotal
        lineas.append({**s, "precio": unit, "cantidad": cantidad, "subtotal": subtotal})
    return {
        "total_salon": salon,
        "servicios": lineas,
        "total_servicios": total_servicios,
        "total_general": salon + total_servicios,
    }


def capacidad_maxima(salon: Dict[str, Any], distribucion: Optional[Dict[str, Any]]) -> int:
    cap = to_int((distribucion or {}).get("capacidad"), 0) or 0
    if cap > 0:
        return cap
    return to_int((salon or {}).get("capacidad"), 0) or 0


def _local(dt: datetime) -> datetime:
    tz = get_app_timezone()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


class PresupuestoPDF:
    """Quote document layout."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self.custom_styles = self._create_custom_styles()

    def _create_custom_styles(self) -> Dict[str, ParagraphStyle]:
        styles = {}
        styles["header"] = ParagraphStyle(
            "QuoteHeader",
            parent=self.styles["Title"],
            fontSize=20,
            spaceAfter=6,
            alignment=TA_LEFT,
            textColor=black,
        )
        styles["subheader"] = ParagraphStyle(
            "QuoteSubheader",
            parent=self.styles["Normal"],
            fontSize=14,
            spaceAfter=20,
            textColor=HexColor("#666666"),
        )
        styles["section"] = ParagraphStyle(
            "QuoteSection",
            parent=self.styles["Heading3"],
            fontSize=12,
            spaceBefore=10,
            spaceAfter=6,
        )
        styles["cell"] = ParagraphStyle(
            "QuoteCell",
            parent=self.styles["Normal"],
            fontSize=10,
        )
        styles["cell_right"] = ParagraphStyle(
            "QuoteCellRight",
            parent=styles["cell"],
            alignment=TA_RIGHT,
        )
        return styles

    def _p(self, text: Any, style: str = "cell") -> Paragraph:
        return Paragraph(escape(str(text if text is not None else "")), self.custom_styles[style])

    def _info_table(self, rows: List[Tuple[str, Any]]) -> Table:
        t = Table([[self._p(k), self._p(v)] for k, v in rows], colWidths=[140, 375])
        t.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
                ]
            )
        )
        return t

    def _lines_table(self, data: List[List[Any]], col_widths: List[Any]) -> Table:
        t = Table(data, colWidths=col_widths, repeatRows=1)
        t.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), HexColor("#f5f5f5")),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("LINEBELOW", (0, 0), (-1, -1), 0.5, HexColor("#dddddd")),
                    ("BACKGROUND", (0, 1), (-1, -1), white),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ]
            )
        )
        return t

    def render(
        self,
        reserva: Dict[str, Any],
        totales: Dict[str, Any],
        tipo_evento: Optional[str] = None,
    ) -> bytes:
        cliente = reserva.get("cliente") or {}
        salon = reserva.get("salon") or {}
        distribucion = reserva.get("distribucion")
        inicio = _local(reserva["fecha_inicio"])
        fin = _local(reserva["fecha_fin"])

        story: List[Any] = [
            Paragraph("Presupuesto de Evento", self.custom_styles["header"]),
            Paragraph(f"Reserva #{int(reserva['id'])}", self.custom_styles["subheader"]),
            Paragraph("Informacion del cliente", self.custom_styles["section"]),
            self._info_table(
                [
                    ("Nombre:", cliente.get("nombre") or "-"),
                    ("Email:", cliente.get("email") or "No informado"),
                    ("Tipo de evento:", (tipo_evento or "").strip() or "Evento"),
                ]
            ),
            Paragraph("Detalles del evento", self.custom_styles["section"]),
            self._info_table(
                [
                    ("Fecha:", inicio.strftime("%d/%m/%Y")),
                    ("Horario:", f"{inicio.strftime('%H:%M')} a {fin.strftime('%H:%M')}"),
                    ("Salon:", salon.get("nombre") or "-"),
                    ("Distribucion:", (distribucion or {}).get("nombre") or "Sin distribucion definida"),
                    ("Cantidad de asistentes:", reserva.get("cantidad_personas") or 0),
                    ("Capacidad maxima:", capacidad_maxima(salon, distribucion)),
                ]
            ),
            Spacer(1, 12),
            Paragraph("Salon contratado", self.custom_styles["section"]),
        ]

        total_salon = formatear_moneda(totales["total_salon"])
        story.append(
            self._lines_table(
                [
                    ["Descripcion", "Cantidad", "Precio unitario", "Subtotal"],
                    [
                        self._p(salon.get("descripcion") or "Sin descripcion"),
                        "1",
                        self._p(total_salon, "cell_right"),
                        self._p(total_salon, "cell_right"),
                    ],
                ],
                [265, 60, 95, 95],
            )
        )

        story.append(Paragraph("Servicios adicionales", self.custom_styles["section"]))
        rows: List[List[Any]] = [["Servicio", "Descripcion", "Cantidad", "Precio unitario", "Subtotal"]]
        if not totales["servicios"]:
            rows.append([self._p("No se agregaron servicios adicionales para esta reserva."), "", "", "", ""])
        for s in totales["servicios"]:
            rows.append(
                [
                    self._p(s.get("nombre")),
                    self._p(s.get("descripcion") or "Sin descripcion"),
                    str(s["cantidad"]),
                    self._p(formatear_moneda(s["precio"]), "cell_right"),
                    self._p(formatear_moneda(s["subtotal"]), "cell_right"),
                ]
            )
        servicios_table = self._lines_table(rows, [130, 150, 55, 90, 90])
        if not totales["servicios"]:
            servicios_table.setStyle(TableStyle([("SPAN", (0, 1), (-1, 1))]))
        story.append(servicios_table)

        story.append(Spacer(1, 20))
        totals = Table(
            [
                ["Total salon", formatear_moneda(totales["total_salon"])],
                ["Total servicios", formatear_moneda(totales["total_servicios"])],
                ["Total general", formatear_moneda(totales["total_general"])],
            ],
            colWidths=[395, 120],
        )
        totals.setStyle(
            TableStyle(
                [
                    ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
                    ("FONTNAME", (0, 0), (0, 1), "Helvetica-Bold"),
                    ("FONTNAME", (0, 2), (-1, 2), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 2), (-1, 2), 12),
                    ("TOPPADDING", (0, 2), (-1, 2), 8),
                ]
            )
        )
        story.append(totals)

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=40,
            rightMargin=40,
            topMargin=50,
            bottomMargin=60,
            title=f"Presupuesto reserva {int(reserva['id'])}",
        )
        doc.build(story)
        buffer.seek(0)
        return buffer.getvalue()


class PresupuestoService(BaseService):

    def __init__(
        self,
        db: Optional[Session] = None,
        repo: Optional[ReservaRepository] = None,
        uploader: Optional[Uploader] = None,
    ):
        super().__init__(db)
        self.repo = repo or ReservaRepository(db)
        self.uploader = uploader or b2_storage.upload_document
        self.pdf = PresupuestoPDF()

    def exportar(self, reserva_id: int, tipo_evento: Optional[str] = None) -> Dict[str, Any]:
        reserva = self.repo.obtener_reserva_detalle(int(reserva_id))
        if not reserva:
            raise NotFoundError("Reserva no encontrada")

        totales = calcular_totales(reserva.get("monto"), reserva.get("servicios") or [])
        try:
            content = self.pdf.render(reserva, totales, tipo_evento)
        except Exception as e:
            logger.error(f"Error generating PDF for reserva {reserva_id}: {e}")
            raise

        key = b2_storage.presupuesto_key(int(reserva_id))
        ok, url_or_error, _ = self.uploader(content, key, "application/pdf")
        if not ok:
            raise StorageError(f"No se pudo subir el presupuesto al storage ({url_or_error}).")

        pointer_updated = True
        try:
            self.repo.actualizar_reserva(int(reserva_id), {"presupuesto_url": key})
            self.repo.commit()
        except (EventosError, SQLAlchemyError) as e:
            self.repo.rollback()
            pointer_updated = False
            logger.warning(f"Presupuesto generado pero no se pudo actualizar la reserva {reserva_id}: {e}")

        return {
            "ok": True,
            "path": key,
            "url": url_or_error,
            "pointer_updated": pointer_updated,
            "total_salon": totales["total_salon"],
            "total_servicios": totales["total_servicios"],
            "total_general": totales["total_general"],
        }
