"""Fixed enumerations shared by the booking paths and the chat commands."""

from __future__ import annotations

import re
from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses an appointment never leaves
TERMINAL_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED})


SERVICES: tuple[str, ...] = (
    "Anterior Tooth Fracture Repair",
    "BPS Denture",
    "Bridge Recementation",
    "Bruxzir Crown",
    "CAD CAM PFM Crown",
    "Cast Partial Denture",
    "Cast RPD Additional Tooth",
    "Ceramic Braces",
    "Ceramic Laminates",
    "Clear Aligners",
    "CLP / Perio Surgeries",
    "Co-Cr Metal Crown",
    "Composite Filling",
    "Composite Laminates",
    "Consultant Doctor",
    "Consultation",
    "Crown Recementation",
    "Dental Bleaching",
    "Dental Implant",
    "Denture Repair",
    "Depigmentation",
    "Diastema Closure",
    "Digital X-ray",
    "Disimpaction Surgery",
    "Fiber Glass Denture",
    "Firm Tooth Extraction",
    "Flap Surgery",
    "Flexible Denture",
    "Flexible RPD",
    "Fluoride Application",
    "Follow Up",
    "Fracture Mandible Treatment",
    "GIC Filling",
    "Gingivectomy",
    "Imported Lucitone Denture",
    "IOPA Film X-ray",
    "Lava/Procera/E-max Crown",
    "Lucitone Denture",
    "Metal Braces",
    "Minor Surgical Procedure",
    "Mobile Tooth Extraction",
    "Ni-Cr Metal Crown",
    "Night Guard / Mouth Guard",
    "Non-Surgical Perio Therapy",
    "Pediatric Restorations",
    "PFM Crown",
    "Post & Core",
    "Preformed Metal Crown",
    "Primary Tooth Extraction",
    "Pulpectomy",
    "RCT - Standard",
    "Removable Appliance",
    "Repeat RCT",
    "RPD Additional Tooth",
    "RPD Single Tooth",
    "Scaling & Polishing",
    "Silver Filling",
    "Space Maintainer",
    "Standard Acrylic Denture",
    "Strip Crown (Anterior)",
    "Surgical Extraction",
    "Temporary Crown",
    "Third Molar RCT",
    "Zirconia Crown",
    "Zirconia Crown (Pediatric)",
)

_SERVICES_BY_KEY = {s.lower(): s for s in SERVICES}

TIME_SLOTS: tuple[str, ...] = (
    "09:00 AM",
    "09:30 AM",
    "10:00 AM",
    "10:30 AM",
    "11:00 AM",
    "11:30 AM",
    "02:00 PM",
    "02:30 PM",
    "03:00 PM",
    "03:30 PM",
    "04:00 PM",
    "04:30 PM",
    "05:00 PM",
)

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)?$", re.IGNORECASE)


def canonical_service(name: str) -> str | None:
    """Return the catalogue spelling of *name*, matched case-insensitively."""
    return _SERVICES_BY_KEY.get(" ".join(name.split()).lower())


def normalize_time(raw: str) -> str | None:
    """Normalize ``10:00``, ``9:30 am`` or ``14:00`` to the slot format ``HH:MM AM``.

    Returns ``None`` when *raw* is not a clock time.
    """
    match = _TIME_RE.match(raw.strip())
    if not match:
        return None
    hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3)
    if minute > 59:
        return None
    if meridiem:
        if not 1 <= hour <= 12:
            return None
        meridiem = meridiem.upper()
    else:
        if hour > 23:
            return None
        meridiem = "PM" if hour >= 12 else "AM"
        hour = hour % 12 or 12
    return f"{hour:02d}:{minute:02d} {meridiem}"
