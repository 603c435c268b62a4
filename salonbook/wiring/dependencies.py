from functools import lru_cache
import logging
from zoneinfo import ZoneInfo

from salonbook.core.config import settings
from salonbook.application.ports.calendar import CalendarPort
from salonbook.application.ports.reference_data import ProcedureCatalogPort, ScheduleSourcePort
from salonbook.application.ports.request_guard import RequestGuardPort
from salonbook.application.ports.staff_contact import StaffContactPort
from salonbook.application.ports.verification import BotChallengePort
from salonbook.application.use_cases.availability import AvailabilityEngine
from salonbook.application.use_cases.booking_matcher import SecureBookingMatcher
from salonbook.application.use_cases.booking_service import BookingPolicy, BookingService
from salonbook.application.use_cases.extension import ExtensionNegotiator
from salonbook.application.use_cases.schedule_resolver import ScheduleResolver
from salonbook.infrastructure.calendar.cached_calendar import CachedCalendar
from salonbook.infrastructure.calendar.google_calendar import GoogleCalendar
from salonbook.infrastructure.calendar.memory_calendar import InMemoryCalendar
from salonbook.infrastructure.contact.webhook_contact import LogStaffContact, WebhookStaffContact
from salonbook.infrastructure.google.auth import GoogleTokenProvider
from salonbook.infrastructure.knowledge.static_reference import StaticReferenceData
from salonbook.infrastructure.sheets.sheets_reference import SheetsReferenceData
from salonbook.infrastructure.store.memory_guard import MemoryRequestGuard
from salonbook.infrastructure.verification.turnstile import TurnstileVerifier

logger = logging.getLogger(__name__)


def _is_local() -> bool:
    return settings.ENV.lower() in {"dev", "local"}


def _has_google_credentials() -> bool:
    return bool(settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET and settings.GOOGLE_REFRESH_TOKEN)


def get_timezone() -> ZoneInfo:
    return ZoneInfo(settings.BUSINESS_TIMEZONE)


@lru_cache
def get_token_provider() -> GoogleTokenProvider:
    return GoogleTokenProvider(
        client_id=settings.GOOGLE_CLIENT_ID or "",
        client_secret=settings.GOOGLE_CLIENT_SECRET or "",
        refresh_token=settings.GOOGLE_REFRESH_TOKEN or "",
    )


@lru_cache
def get_live_calendar() -> CalendarPort:
    if _is_local() or not _has_google_credentials() or not settings.GOOGLE_CALENDAR_ID:
        logger.info("Using InMemoryCalendar", extra={"reason": f"ENV={settings.ENV}"})
        return InMemoryCalendar()
    return GoogleCalendar(tokens=get_token_provider())


@lru_cache
def get_calendar() -> CalendarPort:
    return CachedCalendar(get_live_calendar(), ttl_seconds=settings.BUSY_CACHE_TTL_SECONDS)


@lru_cache
def get_reference_data() -> ScheduleSourcePort | ProcedureCatalogPort:
    if _is_local() or not _has_google_credentials() or not settings.GOOGLE_SHEET_ID:
        logger.info("Using StaticReferenceData", extra={"reason": f"ENV={settings.ENV}"})
        return StaticReferenceData()
    return SheetsReferenceData(tokens=get_token_provider())


def get_schedule_source() -> ScheduleSourcePort:
    return get_reference_data()


def get_procedure_catalog() -> ProcedureCatalogPort:
    return get_reference_data()


@lru_cache
def get_verifier() -> BotChallengePort:
    verifier = TurnstileVerifier()
    if not verifier.enabled:
        logger.warning("TURNSTILE_SECRET not set, bot verification disabled")
    return verifier


@lru_cache
def get_request_guard() -> RequestGuardPort:
    return MemoryRequestGuard()


@lru_cache
def get_staff_contact() -> StaffContactPort:
    if not settings.STAFF_CONTACT_WEBHOOK_URL:
        if not _is_local():
            raise ValueError("STAFF_CONTACT_WEBHOOK_URL is required outside dev/local")
        logger.info("Using LogStaffContact (webhook missing, ENV=dev/local)")
        return LogStaffContact()
    return WebhookStaffContact()


def get_booking_policy() -> BookingPolicy:
    return BookingPolicy(
        modification_cutoff_hours=settings.MODIFICATION_CUTOFF_HOURS,
        search_window_days=settings.SEARCH_WINDOW_DAYS,
        availability_horizon_days=settings.AVAILABILITY_HORIZON_DAYS,
        rate_limit_per_minute=settings.BOOKING_RATE_LIMIT_PER_MINUTE,
        rate_limit_per_hour=settings.BOOKING_RATE_LIMIT_PER_HOUR,
        booking_cooldown_seconds=settings.BOOKING_COOLDOWN_SECONDS,
        contact_rate_limit_per_hour=settings.CONTACT_RATE_LIMIT_PER_HOUR,
    )


@lru_cache
def get_booking_service() -> BookingService:
    tz = get_timezone()
    calendar = get_calendar()
    catalog = get_procedure_catalog()
    resolver = ScheduleResolver(source=get_schedule_source(), timezone=tz)
    engine = AvailabilityEngine(
        calendar=calendar,
        catalog=catalog,
        resolver=resolver,
        timezone=tz,
        step_minutes=settings.SLOT_STEP_MINUTES,
    )
    negotiator = ExtensionNegotiator(
        engine=engine,
        resolver=resolver,
        catalog=catalog,
        timezone=tz,
        shift_step_minutes=settings.SHIFT_BACK_STEP_MINUTES,
        alternative_days=settings.ALTERNATIVE_SEARCH_DAYS,
        alternative_limit=settings.ALTERNATIVE_SLOTS_LIMIT,
    )
    return BookingService(
        calendar=calendar,
        catalog=catalog,
        resolver=resolver,
        engine=engine,
        negotiator=negotiator,
        matcher=SecureBookingMatcher(),
        verifier=get_verifier(),
        guard=get_request_guard(),
        staff_contact=get_staff_contact(),
        timezone=tz,
        policy=get_booking_policy(),
        live_calendar=get_live_calendar(),
    )
