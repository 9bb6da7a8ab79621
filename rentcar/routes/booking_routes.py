from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rentcar.exceptions import BookingError
from rentcar.responses.error import booking_error_response
from rentcar.responses.success import created_response, data_response, success_response
from rentcar.schemas.auth_schema import Actor
from rentcar.schemas.booking_schema import BookingCreate, BookingResponse, PickupRequest, ReturnRequest
from rentcar.schemas.invoice_schema import InvoiceResponse
from rentcar.schemas.payment_schema import PaymentResponse
from rentcar.services.container import Services
from rentcar.utils.dependencies import admin_required, get_current_actor, get_db, get_services

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/")
def create_booking(
    booking_in: BookingCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    try:
        booking = services.booking_service.create(db, actor, booking_in)
        return created_response("Booking created", BookingResponse.model_validate(booking))
    except BookingError as e:
        return booking_error_response(e)


@router.get("/")
def list_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    try:
        return data_response(services.booking_service.list_bookings(db, actor, page, limit))
    except BookingError as e:
        return booking_error_response(e)


@router.get("/{booking_id}")
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    try:
        return data_response(services.booking_service.get_booking(db, actor, booking_id))
    except BookingError as e:
        return booking_error_response(e)


@router.patch("/{booking_id}/cancel")
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    try:
        booking = services.booking_service.cancel(db, actor, booking_id)
        return success_response("Booking cancelled", BookingResponse.model_validate(booking))
    except BookingError as e:
        return booking_error_response(e)


@router.post("/{booking_id}/extend")
def extend_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    try:
        booking = services.booking_service.extend(db, actor, booking_id)
        return success_response("Booking extended", BookingResponse.model_validate(booking))
    except BookingError as e:
        return booking_error_response(e)


@router.post("/{booking_id}/confirm")
def confirm_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(admin_required),
    services: Services = Depends(get_services),
):
    try:
        booking = services.booking_service.confirm(db, actor, booking_id)
        return success_response("Booking confirmed", BookingResponse.model_validate(booking))
    except BookingError as e:
        return booking_error_response(e)


@router.post("/{booking_id}/pickup")
def pickup_booking(
    booking_id: int,
    pickup_in: PickupRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(admin_required),
    services: Services = Depends(get_services),
):
    try:
        result = services.booking_service.pickup(
            db, actor, booking_id, pickup_in.security_deposit, pickup_in.payment_method.value
        )
        return success_response(
            "Vehicle picked up",
            {
                "booking": BookingResponse.model_validate(result.booking),
                "deposit_payment": PaymentResponse.model_validate(result.deposit_payment),
                "rental_payment": PaymentResponse.model_validate(result.rental_payment)
                if result.rental_payment
                else None,
                "invoice": InvoiceResponse.model_validate(result.invoice) if result.invoice else None,
            },
        )
    except BookingError as e:
        return booking_error_response(e)


@router.post("/{booking_id}/return")
def return_booking(
    booking_id: int,
    return_in: ReturnRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(admin_required),
    services: Services = Depends(get_services),
):
    try:
        result = services.booking_service.return_vehicle(
            db, actor, booking_id, return_in.actual_end_datetime, return_in.fees()
        )
        invoice_url = None
        if result.invoice is not None:
            invoice_url = services.invoice_service.document_url(result.invoice)
        return success_response(
            "Vehicle returned",
            {
                "booking": BookingResponse.model_validate(result.booking),
                "settlement": result.settlement,
                "payment": PaymentResponse.model_validate(result.payment) if result.payment else None,
                "invoice": InvoiceResponse.model_validate(result.invoice) if result.invoice else None,
                "invoice_url": invoice_url,
            },
        )
    except BookingError as e:
        return booking_error_response(e)
