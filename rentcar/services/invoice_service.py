import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from rentcar.database.models import Invoice, InvoiceLineItem, Booking
from rentcar.enums.invoice_status import InvoiceStatus
from rentcar.exceptions import DependencyFailure
from rentcar.schemas.invoice_schema import InvoiceLineItemCreate
from rentcar.services.storage_service import ObjectStorage
from rentcar.utils.id_generator import (
    generate_booking_reference,
    generate_invoice_document_key,
    generate_invoice_number,
)

logger = logging.getLogger(__name__)


class InvoiceService:
    def __init__(self, storage: ObjectStorage, bucket: str, url_ttl_seconds: int = 3600):
        self.model = Invoice
        self.line_item_model = InvoiceLineItem
        self.storage = storage
        self.bucket = bucket
        self.url_ttl_seconds = url_ttl_seconds

    def get(self, db: Session, invoice_id: int) -> Optional[Invoice]:
        return (
            db.query(self.model)
            .options(joinedload(self.model.line_items))
            .filter(self.model.id == invoice_id)
            .first()
        )

    def get_for_booking(self, db: Session, booking_id: int) -> List[Invoice]:
        return (
            db.query(self.model)
            .filter(self.model.booking_id == booking_id)
            .options(joinedload(self.model.line_items))
            .order_by(self.model.id)
            .all()
        )

    def _unique_reference(self, db: Session, issued_at: datetime) -> str:
        while True:
            reference = generate_invoice_number(issued_at)
            exists = db.query(self.model.id).filter(self.model.reference_number == reference).first()
            if not exists:
                return reference

    def create(
        self,
        db: Session,
        booking: Booking,
        line_items: List[InvoiceLineItemCreate],
        tax_rate: int,
        tax_amount: int,
        issued_at: datetime,
        issued_by: Optional[int] = None,
        status: InvoiceStatus = InvoiceStatus.ISSUED,
    ) -> Invoice:
        """Add an invoice to the session; the caller's transaction commits it."""
        base_amount = sum(item.amount for item in line_items)
        db_invoice = self.model(
            booking_id=booking.id,
            user_id=booking.user_id,
            reference_number=self._unique_reference(db, issued_at),
            base_amount=base_amount,
            tax_rate=tax_rate,
            tax_amount=tax_amount,
            total_amount=base_amount + tax_amount,
            status=status.value,
            issued_by=issued_by,
            issued_at=issued_at,
        )
        for item_in in line_items:
            db_invoice.line_items.append(self.line_item_model(**item_in.model_dump()))
        db.add(db_invoice)
        db.flush()
        return db_invoice

    def render_document(self, invoice: Invoice, booking: Booking) -> bytes:
        """Plain-text rendition of an issued invoice."""
        lines = [
            "RENTAL INVOICE",
            f"Invoice number: {invoice.reference_number}",
            f"Issued at: {invoice.issued_at:%Y-%m-%d %H:%M}",
            f"Booking: {generate_booking_reference(booking.id)}",
            f"Vehicle: {booking.vehicle_id}",
            f"Rental start: {booking.actual_start_datetime or booking.start_datetime:%Y-%m-%d %H:%M}",
            f"Scheduled end: {booking.end_datetime:%Y-%m-%d %H:%M}",
        ]
        if booking.actual_end_datetime:
            lines.append(f"Returned at: {booking.actual_end_datetime:%Y-%m-%d %H:%M}")
        lines.append("-" * 48)
        for item in invoice.line_items:
            lines.append(f"{item.description:<36}{item.amount:>12}")
        lines.append("-" * 48)
        lines.append(f"{'Subtotal':<36}{invoice.base_amount:>12}")
        lines.append(f"{f'Tax ({invoice.tax_rate}%)':<36}{invoice.tax_amount:>12}")
        lines.append(f"{'TOTAL':<36}{invoice.total_amount:>12}")
        return ("\n".join(lines) + "\n").encode("utf-8")

    def publish_document(self, db: Session, invoice: Invoice, booking: Booking) -> Optional[str]:
        """Render and upload the invoice document, then attach its key.

        Runs after the owning transaction has committed. A failure is logged
        and reported as ``None``; it never propagates.
        """
        key = generate_invoice_document_key(invoice.reference_number)
        try:
            self._upload(key, self.render_document(invoice, booking))
            invoice.document_key = key
            db.commit()
        except (DependencyFailure, SQLAlchemyError) as e:
            db.rollback()
            logger.error("Failed to publish document for invoice %s: %s", invoice.reference_number, e)
            return None
        logger.info("Invoice %s document stored as %s", invoice.reference_number, key)
        return key

    def _upload(self, key: str, document: bytes):
        try:
            self.storage.put_object(self.bucket, key, document, "text/plain")
        except Exception as e:
            raise DependencyFailure(f"Could not store {self.bucket}/{key}: {e}") from e

    def document_url(self, invoice: Invoice) -> Optional[str]:
        if not invoice.document_key:
            return None
        return self.storage.presigned_url(self.bucket, invoice.document_key, self.url_ttl_seconds)
