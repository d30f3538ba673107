"""Plain-text contract bodies for a booking participation.

The body is opaque to the lifecycle engine; it is stored on the contract and
shown to signers as-is. PDF finalisation happens elsewhere and only lands on
``Contract.pdf_url``.

Wording comes from a small catalogue of agreement templates, one per line of
work. ``general-standard`` is used when a contract names no template.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from .. import models
from ..utils.errors import ValidationFailed
from ..utils.timeutils import utcnow

AGENCY_NAME = "Talent Booking Agency"
DEFAULT_TEMPLATE_ID = "general-standard"
TEMPLATE_CATEGORIES = ("general", "modeling", "acting", "commercial", "event")


@dataclass(frozen=True)
class ContractTemplate:
    id: str
    name: str
    description: str
    category: str
    heading: str
    details_heading: str = "PROJECT DETAILS"
    title_label: str = "Project Title"
    date_label: str = "Date"
    rate_label: str = "Rate"
    rate_unit: str = "per session"
    services_heading: Optional[str] = None
    services: List[str] = field(default_factory=list)
    requirements_label: str = "SPECIFIC REQUIREMENTS"
    # (heading, lines) blocks rendered after the services, e.g. usage rights
    sections: List[tuple[str, List[str]]] = field(default_factory=list)
    terms_heading: str = "TERMS"
    terms: List[str] = field(default_factory=list)
    notes_heading: str = "NOTES"


TEMPLATES: dict[str, ContractTemplate] = {
    t.id: t
    for t in (
        ContractTemplate(
            id=DEFAULT_TEMPLATE_ID,
            name="Professional Talent Agreement",
            description="General agreement for any talent booking",
            category="general",
            heading="PROFESSIONAL TALENT AGREEMENT",
            terms=[
                "Talent agrees to provide the services described above on the dates listed.",
                "Payment is due within 30 days of the completion of services.",
                "Cancellation by the client within 48 hours of the call time is billable in full.",
                "Usage rights are limited to the project described unless agreed in writing.",
            ],
        ),
        ContractTemplate(
            id="modeling-standard",
            name="Professional Modeling Agreement",
            description="Comprehensive contract for fashion, commercial, and editorial modeling work",
            category="modeling",
            heading="PROFESSIONAL MODELING AGREEMENT",
            date_label="Shoot Date",
            rate_label="Session Fee",
            services_heading="SCOPE OF MODELING SERVICES",
            services=[
                "Professional modeling services as specified",
                "Wardrobe changes as required (up to 5 looks)",
                "Professional hair and makeup session",
                "Collaboration with creative team and photographer",
                "Standard posing and direction following",
            ],
            sections=[
                (
                    "USAGE RIGHTS & LICENSING",
                    [
                        "Digital Marketing: Website, social media, email campaigns (1 year)",
                        "Print Advertising: Magazines, brochures, catalogs (6 months)",
                        "Territory: North America",
                        "Exclusivity: Non-exclusive",
                        "Extended usage, exclusivity or international rights require separate negotiation.",
                    ],
                ),
            ],
            terms_heading="TERMS & CONDITIONS",
            terms=[
                "PROFESSIONAL CONDUCT: Talent arrives punctually, groomed and ready to follow creative direction.",
                "WARDROBE & STYLING: Client provides wardrobe unless otherwise specified.",
                "PAYMENT TERMS: Payment is due within 30 days of shoot completion.",
                "CANCELLATION: 24+ hours notice carries no penalty; 12-24 hours is billed at 50%; "
                "less than 12 hours is billed in full.",
                "IMAGE APPROVAL: Client has final approval on image selection and retouching.",
                "CONFIDENTIALITY: Unreleased campaigns and pricing stay confidential.",
            ],
            notes_heading="ADDITIONAL NOTES",
        ),
        ContractTemplate(
            id="acting-standard",
            name="Professional Acting Agreement",
            description="Comprehensive contract for film, TV, theater, and commercial acting work",
            category="acting",
            heading="PROFESSIONAL ACTING AGREEMENT",
            details_heading="PRODUCTION DETAILS",
            date_label="Shoot/Performance Date",
            rate_label="Performance Fee",
            rate_unit="per performance/day",
            services_heading="ROLE & PERFORMANCE REQUIREMENTS",
            services=[
                "Professional acting performance as directed",
                "Attendance at rehearsals and script readings",
                "Wardrobe fittings and costume coordination",
                "Collaboration with director and creative team",
                "Promotional activities as specified",
            ],
            requirements_label="SPECIFIC ROLE REQUIREMENTS",
            sections=[
                (
                    "USAGE RIGHTS & DISTRIBUTION",
                    [
                        "Initial Distribution: Theatrical, streaming, broadcast (as applicable)",
                        "Promotional Use: Trailers, behind-the-scenes, press materials",
                        "Territory: North America (unless specified otherwise)",
                        "Duration: In perpetuity for the specific production",
                    ],
                ),
            ],
            terms_heading="TERMS & CONDITIONS",
            terms=[
                "PROFESSIONAL CONDUCT: Actor arrives punctually and takes direction.",
                "REHEARSALS & PREPARATION: Actor attends all scheduled rehearsals and readings.",
                "PAYMENT TERMS: Payment is due within 30 days of performance completion. "
                "Overtime applies beyond 10 hours per day.",
                "CANCELLATION: 48+ hours notice carries no penalty; 24-48 hours is billed at 50%; "
                "less than 24 hours is billed in full.",
                "CREATIVE CONTROL: Final creative decisions rest with the director or producer.",
                "CONFIDENTIALITY: Script and plot details stay confidential until public release.",
            ],
            notes_heading="ADDITIONAL PRODUCTION NOTES",
        ),
        ContractTemplate(
            id="commercial-standard",
            name="Commercial Advertisement Agreement",
            description="Professional contract for TV, digital, and print commercial work",
            category="commercial",
            heading="COMMERCIAL ADVERTISEMENT AGREEMENT",
            details_heading="COMMERCIAL PRODUCTION DETAILS",
            title_label="Campaign Title",
            date_label="Shoot Date",
            rate_label="Session Fee",
            rate_unit="(plus usage fees)",
            services_heading="PERFORMANCE & DELIVERABLES",
            services=[
                "On-camera performance and dialogue delivery",
                "Product demonstration and interaction",
                "Multiple takes and angle coverage",
                "Wardrobe changes as required",
                "Voice-over recording (if applicable)",
            ],
            requirements_label="SPECIFIC CAMPAIGN REQUIREMENTS",
            sections=[
                (
                    "USAGE RIGHTS & MEDIA DISTRIBUTION",
                    [
                        "Television: National broadcast (13 weeks initial cycle)",
                        "Digital/Online: Social media, video platforms, website (6 months)",
                        "Territory: United States",
                        "Exclusivity: Category exclusive during the active campaign",
                    ],
                ),
            ],
            terms_heading="COMMERCIAL TERMS & CONDITIONS",
            terms=[
                "PRODUCT ENDORSEMENT: Talent avoids conflicting endorsements during exclusivity.",
                "PAYMENT STRUCTURE: Session fee is due within 30 days; usage fees follow media placement.",
                "CANCELLATION: 48+ hours notice carries no penalty; 24-48 hours is billed at 50%; "
                "less than 24 hours is billed in full.",
                "CREATIVE APPROVAL: Client has final approval on the commercial edit.",
                "RESIDUALS: Usage beyond the initial cycle is compensated separately.",
            ],
            notes_heading="CAMPAIGN NOTES",
        ),
        ContractTemplate(
            id="event-standard",
            name="Live Event Performance Agreement",
            description="Professional contract for live events, appearances, and performances",
            category="event",
            heading="LIVE EVENT PERFORMANCE AGREEMENT",
            details_heading="EVENT DETAILS",
            title_label="Event Name",
            date_label="Event Date",
            rate_label="Performance Fee",
            rate_unit="per event",
            services_heading="PERFORMANCE REQUIREMENTS",
            services=[
                "Live performance as specified",
                "Professional appearance and interaction",
                "Meet and greet with attendees (if applicable)",
                "Photo opportunities and media interviews",
            ],
            requirements_label="SPECIFIC EVENT REQUIREMENTS",
            sections=[
                (
                    "TECHNICAL REQUIREMENTS & LOGISTICS",
                    [
                        "Organizer: sound system, stage lighting, security and travel arrangements",
                        "Performer: own performance equipment and stage-appropriate wardrobe",
                    ],
                ),
            ],
            terms_heading="EVENT TERMS & CONDITIONS",
            terms=[
                "SOUND CHECK: Performer is entitled to a sound check before the event starts.",
                "PAYMENT TERMS: 50% deposit on signing, balance within 30 days of the event.",
                "CANCELLATION: 30+ days notice refunds the deposit less 10%; 14-30 days is billed "
                "at 50%; less than 14 days is billed in full.",
                "RECORDING RIGHTS: Recordings are for promotional use only.",
            ],
            notes_heading="EVENT NOTES",
        ),
    )
}


def get_all_templates() -> list[ContractTemplate]:
    return list(TEMPLATES.values())


def get_templates_by_category(category: str) -> list[ContractTemplate]:
    return [t for t in TEMPLATES.values() if t.category == category]


def get_template(template_id: Optional[str] = None) -> ContractTemplate:
    """Look up a template, falling back to the general agreement for ``None``."""
    template = TEMPLATES.get(template_id or DEFAULT_TEMPLATE_ID)
    if template is None:
        raise ValidationFailed(f"Unknown contract template '{template_id}'.", field="template_id")
    return template


def _fmt_date(value: Optional[datetime]) -> str:
    if not value:
        return "To be confirmed"
    return value.strftime("%A, %B %d, %Y")


def _fmt_time(value: Optional[datetime]) -> str:
    if not value:
        return "To be confirmed"
    return value.strftime("%I:%M %p")


def _fmt_rate(rate: Optional[Decimal], unit: str) -> str:
    if rate is None:
        return "As agreed"
    return f"${Decimal(rate):,.2f} {unit}"


def _party(label: str, user: Optional[models.User]) -> list[str]:
    if user is None:
        return [f"{label}:", "  On file"]
    return [
        f"{label}:",
        f"  Name:  {user.full_name}",
        f"  Email: {user.email}",
        f"  Phone: {user.phone_number or 'On file'}",
    ]


def contract_title(booking: models.Booking, template: Optional[ContractTemplate] = None) -> str:
    if template is None or template.id == DEFAULT_TEMPLATE_ID:
        return f"Contract - {booking.title}"
    return f"{template.name} - {booking.title}"


def render_contract(
    booking: models.Booking,
    talent: models.User,
    client: Optional[models.User],
    issued_at: Optional[datetime] = None,
    template_id: Optional[str] = None,
) -> str:
    """Return the contract body for ``talent`` on ``booking``.

    Raises ``ValidationFailed`` for an unknown ``template_id``.
    """
    template = get_template(template_id)
    issued_at = issued_at or utcnow()
    lines: list[str] = [
        template.heading,
        AGENCY_NAME,
        "",
        f"Agreement Number: {booking.code}",
        f"Date: {issued_at.strftime('%B %d, %Y')}",
        "",
        "PARTIES TO AGREEMENT",
        *_party("CLIENT", client),
        *_party("TALENT", talent),
    ]
    guardian = talent.guardian
    if guardian is not None:
        lines.extend(_party("PARENT / LEGAL GUARDIAN", guardian))

    labels = [
        template.title_label,
        "Location",
        template.date_label,
        "Call Time",
        "Wrap Time",
        template.rate_label,
    ]
    width = max(len(label) for label in labels) + 2
    values = [
        booking.title,
        booking.location or "To be confirmed",
        _fmt_date(booking.start_date),
        _fmt_time(booking.start_date),
        _fmt_time(booking.end_date),
        _fmt_rate(booking.rate, template.rate_unit),
    ]
    lines.extend(["", template.details_heading])
    lines.extend(f"  {(label + ':').ljust(width)}{value}" for label, value in zip(labels, values))

    if template.services_heading:
        lines.extend(["", template.services_heading])
        lines.extend(f"  - {item}" for item in template.services)
    if booking.deliverables:
        lines.extend(["", template.requirements_label, booking.deliverables])
    for heading, body in template.sections:
        lines.extend(["", heading])
        lines.extend(f"  - {item}" for item in body)
    if booking.notes:
        lines.extend(["", template.notes_heading, booking.notes])

    lines.extend(["", template.terms_heading])
    lines.extend(f"{n}. {term}" for n, term in enumerate(template.terms, start=1))
    lines.extend(["", "This agreement becomes binding once every listed party has signed."])
    return "\n".join(lines)
