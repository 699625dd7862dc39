"""Typed wrappers over the remote ticketing API."""

from ticketoffice.services.auth import AuthService  # noqa: F401
from ticketoffice.services.checkout import CheckoutService  # noqa: F401
from ticketoffice.services.contact import ContactService  # noqa: F401
from ticketoffice.services.coupons import CouponService  # noqa: F401
from ticketoffice.services.events import EventService  # noqa: F401
from ticketoffice.services.organizer import OrganizerService  # noqa: F401
from ticketoffice.services.region import RegionService  # noqa: F401
from ticketoffice.services.reports import ReportService, StatsService  # noqa: F401
from ticketoffice.services.sales import SalesService, TicketValidator  # noqa: F401
from ticketoffice.services.vendors import VendorService  # noqa: F401
