from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from tenant_bot.schemas.knowledge import LocalizedText, MenuKind, MenuOption
from tenant_bot.schemas.tenant import BusinessType


@dataclass(frozen=True)
class SectionTemplate:
    key: str
    label: LocalizedText
    icon: str
    kind: MenuKind = MenuKind.OFFERINGS
    requires_pickup: bool = False


@dataclass(frozen=True)
class CategoryTemplate:
    """Everything the bot needs to know about one kind of business."""

    business_type: BusinessType
    icon: str
    name: LocalizedText
    default_bot_name: str
    service_label: LocalizedText
    booking_label: LocalizedText
    order_type: str
    sections: Tuple[SectionTemplate, ...]
    collect_fields: Tuple[Tuple[str, str], ...]
    instructions: str

    def default_menu(self) -> List[MenuOption]:
        options = [
            MenuOption(
                label=section.label,
                kind=section.kind,
                section=section.key,
                icon=section.icon,
                requires_pickup=section.requires_pickup,
            )
            for section in self.sections
        ]
        options.append(
            MenuOption(
                label=LocalizedText(en="Chat with us", sw="Ongea nasi"),
                kind=MenuKind.CHAT,
                icon="💬",
            )
        )
        return options


def _text(en: str, sw: str) -> LocalizedText:
    return LocalizedText(en=en, sw=sw)


CATEGORIES: Dict[BusinessType, CategoryTemplate] = {
    BusinessType.TOURISM: CategoryTemplate(
        business_type=BusinessType.TOURISM,
        icon="🏝️",
        name=_text("Tourism & Tours", "Utalii na Ziara"),
        default_bot_name="Tour Guide",
        service_label=_text("tours", "ziara"),
        booking_label=_text("Book a tour", "Buku ziara"),
        order_type="booking",
        sections=(
            SectionTemplate("tours", _text("Day tours", "Ziara za siku"), "🚤", requires_pickup=True),
            SectionTemplate("packages", _text("Packages", "Vifurushi"), "🎁", kind=MenuKind.PACKAGES),
            SectionTemplate("safaris", _text("Safaris", "Safari"), "🦁"),
        ),
        collect_fields=(
            ("tour", "Tour name"),
            ("date", "Preferred date"),
            ("pax", "Number of people"),
            ("pickup", "Pickup location"),
        ),
        instructions=(
            "Help customers choose tours, explain what each tour includes, and give prices per person. "
            "Mention pickup options and recommend tours that match the group size."
        ),
    ),
    BusinessType.HOTEL: CategoryTemplate(
        business_type=BusinessType.HOTEL,
        icon="🏨",
        name=_text("Hotel & Lodging", "Hoteli na Malazi"),
        default_bot_name="Front Desk",
        service_label=_text("rooms", "vyumba"),
        booking_label=_text("Book a room", "Buku chumba"),
        order_type="reservation",
        sections=(
            SectionTemplate("rooms", _text("Rooms", "Vyumba"), "🛏️"),
            SectionTemplate("packages", _text("Stay packages", "Vifurushi vya malazi"), "🎁", kind=MenuKind.PACKAGES),
        ),
        collect_fields=(
            ("room_type", "Room type"),
            ("check_in", "Check-in date"),
            ("guests", "Number of guests"),
            ("nights", "Number of nights"),
        ),
        instructions=(
            "Describe room types, amenities and rates per night. Ask for check-in date and number of guests "
            "before quoting a total."
        ),
    ),
    BusinessType.RESTAURANT: CategoryTemplate(
        business_type=BusinessType.RESTAURANT,
        icon="🍽️",
        name=_text("Restaurant & Cafe", "Mgahawa"),
        default_bot_name="Host",
        service_label=_text("menu", "menyu"),
        booking_label=_text("Reserve a table", "Hifadhi meza"),
        order_type="reservation",
        sections=(SectionTemplate("menu", _text("Menu", "Menyu"), "🍲"),),
        collect_fields=(
            ("date", "Date"),
            ("time", "Time"),
            ("guests", "Number of guests"),
        ),
        instructions=(
            "Share menu items with prices, mention dietary options when asked, and help with table reservations."
        ),
    ),
    BusinessType.SALON: CategoryTemplate(
        business_type=BusinessType.SALON,
        icon="💇",
        name=_text("Salon & Beauty", "Saluni na Urembo"),
        default_bot_name="Stylist",
        service_label=_text("services", "huduma"),
        booking_label=_text("Book an appointment", "Weka miadi"),
        order_type="appointment",
        sections=(
            SectionTemplate("services", _text("Services", "Huduma"), "💅"),
            SectionTemplate("packages", _text("Beauty packages", "Vifurushi vya urembo"), "🎁", kind=MenuKind.PACKAGES),
        ),
        collect_fields=(
            ("service", "Service"),
            ("date", "Date"),
            ("time", "Preferred time"),
        ),
        instructions="Explain services, how long they take and their prices. Help customers pick an appointment slot.",
    ),
    BusinessType.RETAIL: CategoryTemplate(
        business_type=BusinessType.RETAIL,
        icon="🛍️",
        name=_text("Retail Shop", "Duka"),
        default_bot_name="Shop Assistant",
        service_label=_text("products", "bidhaa"),
        booking_label=_text("Place an order", "Weka oda"),
        order_type="order",
        sections=(SectionTemplate("products", _text("Products", "Bidhaa"), "📦"),),
        collect_fields=(
            ("product", "Product"),
            ("quantity", "Quantity"),
            ("delivery", "Delivery address"),
        ),
        instructions="Help customers find products, confirm availability and prices, and explain delivery options.",
    ),
    BusinessType.HEALTHCARE: CategoryTemplate(
        business_type=BusinessType.HEALTHCARE,
        icon="🏥",
        name=_text("Healthcare & Clinic", "Afya na Kliniki"),
        default_bot_name="Clinic Assistant",
        service_label=_text("services", "huduma"),
        booking_label=_text("Book a consultation", "Weka miadi ya daktari"),
        order_type="appointment",
        sections=(SectionTemplate("services", _text("Services", "Huduma"), "🩺"),),
        collect_fields=(
            ("service", "Service"),
            ("date", "Date"),
            ("patient_name", "Patient name"),
        ),
        instructions=(
            "Explain available services and consultation fees. Never give medical diagnoses; "
            "refer urgent cases to emergency services."
        ),
    ),
    BusinessType.FITNESS: CategoryTemplate(
        business_type=BusinessType.FITNESS,
        icon="💪",
        name=_text("Fitness & Gym", "Mazoezi na Gym"),
        default_bot_name="Coach",
        service_label=_text("programs", "programu"),
        booking_label=_text("Join a class", "Jiunge na darasa"),
        order_type="booking",
        sections=(
            SectionTemplate("programs", _text("Programs", "Programu"), "🏋️"),
            SectionTemplate("memberships", _text("Memberships", "Uanachama"), "🎫", kind=MenuKind.PACKAGES),
        ),
        collect_fields=(
            ("program", "Program"),
            ("start_date", "Start date"),
        ),
        instructions="Describe classes, schedules and membership plans. Motivate customers without making health claims.",
    ),
    BusinessType.EDUCATION: CategoryTemplate(
        business_type=BusinessType.EDUCATION,
        icon="🎓",
        name=_text("Education & Training", "Elimu na Mafunzo"),
        default_bot_name="Course Advisor",
        service_label=_text("courses", "kozi"),
        booking_label=_text("Enroll", "Jisajili"),
        order_type="enrollment",
        sections=(SectionTemplate("courses", _text("Courses", "Kozi"), "📚"),),
        collect_fields=(
            ("course", "Course"),
            ("start_date", "Start date"),
            ("students", "Number of students"),
        ),
        instructions="Explain courses, duration, fees and enrollment steps.",
    ),
    BusinessType.TRANSPORT: CategoryTemplate(
        business_type=BusinessType.TRANSPORT,
        icon="🚐",
        name=_text("Transport & Transfers", "Usafiri"),
        default_bot_name="Dispatcher",
        service_label=_text("routes", "njia"),
        booking_label=_text("Book a ride", "Buku safari"),
        order_type="booking",
        sections=(SectionTemplate("services", _text("Routes", "Njia"), "🛣️", requires_pickup=True),),
        collect_fields=(
            ("route", "Route"),
            ("date", "Travel date"),
            ("passengers", "Passengers"),
        ),
        instructions="Quote transfer routes and fares per passenger, and confirm pickup points and travel dates.",
    ),
    BusinessType.EVENTS: CategoryTemplate(
        business_type=BusinessType.EVENTS,
        icon="🎉",
        name=_text("Events & Entertainment", "Matukio na Burudani"),
        default_bot_name="Event Planner",
        service_label=_text("events", "matukio"),
        booking_label=_text("Get tickets", "Pata tiketi"),
        order_type="ticket",
        sections=(
            SectionTemplate("services", _text("Events", "Matukio"), "🎟️"),
            SectionTemplate("packages", _text("Event packages", "Vifurushi vya matukio"), "🎁", kind=MenuKind.PACKAGES),
        ),
        collect_fields=(
            ("event", "Event"),
            ("date", "Date"),
            ("tickets", "Number of tickets"),
        ),
        instructions="Share upcoming events, ticket prices and packages for private events.",
    ),
    BusinessType.SERVICES: CategoryTemplate(
        business_type=BusinessType.SERVICES,
        icon="🛠️",
        name=_text("Professional Services", "Huduma za Kitaalamu"),
        default_bot_name="Assistant",
        service_label=_text("services", "huduma"),
        booking_label=_text("Request a service", "Omba huduma"),
        order_type="request",
        sections=(SectionTemplate("services", _text("Services", "Huduma"), "🧰"),),
        collect_fields=(
            ("service", "Service"),
            ("date", "Preferred date"),
            ("location", "Location"),
        ),
        instructions="Explain services and indicative prices, and collect what is needed to prepare a quote.",
    ),
    BusinessType.REAL_ESTATE: CategoryTemplate(
        business_type=BusinessType.REAL_ESTATE,
        icon="🏠",
        name=_text("Real Estate", "Mali Isiyohamishika"),
        default_bot_name="Property Agent",
        service_label=_text("properties", "nyumba"),
        booking_label=_text("Book a viewing", "Panga kutembelea"),
        order_type="viewing",
        sections=(SectionTemplate("properties", _text("Properties", "Nyumba"), "🏘️"),),
        collect_fields=(
            ("property", "Property"),
            ("date", "Viewing date"),
            ("budget", "Budget"),
        ),
        instructions="Describe listed properties, prices and locations, and arrange viewings.",
    ),
    BusinessType.OTHER: CategoryTemplate(
        business_type=BusinessType.OTHER,
        icon="🏢",
        name=_text("Other Business", "Biashara Nyingine"),
        default_bot_name="Assistant",
        service_label=_text("services", "huduma"),
        booking_label=_text("Make a booking", "Weka oda"),
        order_type="order",
        sections=(SectionTemplate("services", _text("Services", "Huduma"), "📋"),),
        collect_fields=(
            ("service", "Service"),
            ("date", "Date"),
        ),
        instructions="Answer questions about the business and help customers place orders.",
    ),
}

_missing = set(BusinessType) - set(CATEGORIES)
if _missing:
    raise RuntimeError(f"Business categories without a template: {sorted(item.value for item in _missing)}")


def get_category(business_type: BusinessType | str) -> CategoryTemplate:
    return CATEGORIES[BusinessType.from_value(business_type)]


def list_categories() -> List[CategoryTemplate]:
    return [CATEGORIES[business_type] for business_type in BusinessType]
