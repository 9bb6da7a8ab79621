from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rentcar.exceptions import BookingError
from rentcar.responses.error import booking_error_response, forbidden_error, not_found_error
from rentcar.responses.success import data_response, success_response
from rentcar.schemas.auth_schema import Actor
from rentcar.schemas.invoice_schema import InvoiceResponse
from rentcar.schemas.payment_schema import DepositConfirmation, PaymentResponse
from rentcar.services.container import Services
from rentcar.utils.dependencies import admin_required, get_current_actor, get_db, get_services

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/webhook")
def payment_webhook(
    deposit: DepositConfirmation,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Gateway callback for a paid booking deposit; confirms the booking."""
    try:
        payment = services.booking_service.confirm_deposit(db, deposit)
        return success_response("Deposit recorded", PaymentResponse.model_validate(payment))
    except BookingError as e:
        return booking_error_response(e)


@router.post("/{payment_id}/confirm")
def confirm_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(admin_required),
    services: Services = Depends(get_services),
):
    try:
        payment = services.payment_service.mark_paid(db, actor, payment_id)
        return success_response("Payment confirmed", PaymentResponse.model_validate(payment))
    except BookingError as e:
        return booking_error_response(e)


@router.get("/booking/{booking_id}")
def get_booking_payments(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    try:
        payments = services.payment_service.get_payments_for_booking(db, actor, booking_id)
        return data_response([PaymentResponse.model_validate(p) for p in payments])
    except BookingError as e:
        return booking_error_response(e)


@router.get("/booking/{booking_id}/invoices")
def get_booking_invoices(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    try:
        services.booking_service.get_visible(db, actor, booking_id)
    except BookingError as e:
        return booking_error_response(e)
    invoices = services.invoice_service.get_for_booking(db, booking_id)
    return data_response([InvoiceResponse.model_validate(i) for i in invoices])


@router.get("/invoices/{invoice_id}")
def get_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    invoice = services.invoice_service.get(db, invoice_id)
    if not invoice:
        return not_found_error(f"Invoice with ID {invoice_id} not found.")
    if not actor.is_admin and invoice.user_id != actor.id:
        return forbidden_error("Not authorized to view this invoice.")
    return data_response(
        {
            "invoice": InvoiceResponse.model_validate(invoice),
            "document_url": services.invoice_service.document_url(invoice),
        }
    )
