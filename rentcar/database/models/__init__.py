from .user_model import User
from .location_model import Location
from .vehicle_model import VehicleType, Vehicle
from .rental_package_model import RentalPackage
from .booking_model import Booking
from .invoice_model import Invoice
from .invoice_line_item_model import InvoiceLineItem
from .payment_model import Payment
from .activity_log_model import ActivityLog
from .review_model import Review

__all__ = ["User", "Location", "VehicleType", "Vehicle", "RentalPackage", "Booking", "Invoice", "InvoiceLineItem", "Payment", "ActivityLog", "Review"]
