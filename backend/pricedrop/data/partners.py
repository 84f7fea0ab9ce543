"""Approved affiliate partners (CJ network).

Only these sites may receive commission-tracked links. The catalog is static
reference data: it is read at import time and never mutated.
"""

from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class ApprovedPartner:
    partner_id: str
    name: str
    tracking_id: str
    base_url: str


_PARTNERS = (
    ApprovedPartner(
        partner_id="hotels_com",
        name="Hotels.com",
        tracking_id="1702763",
        base_url="https://www.anrdoezrs.net/click-1702763-15042852",
    ),
    ApprovedPartner(
        partner_id="address_hotels",
        name="Address Hotels",
        tracking_id="7280686",
        base_url="https://www.anrdoezrs.net/click-7280686-15042852",
    ),
    ApprovedPartner(
        partner_id="mytrip",
        name="MyTrip",
        tracking_id="7122258",
        base_url="https://www.anrdoezrs.net/click-7122258-15042852",
    ),
)

# Insertion order matters: the first entry is the default partner.
APPROVED_PARTNERS: MappingProxyType = MappingProxyType({p.partner_id: p for p in _PARTNERS})

DEFAULT_PARTNER_ID = _PARTNERS[0].partner_id

# Site-name substring → partner id. Checked in order; "address" must precede
# "hotels" because "Address Hotels" contains both (a hotels-first scan would
# send Address Hotels offers to hotels_com).
PARTNER_SITE_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("address", "address_hotels"),
    ("mytrip", "mytrip"),
    ("hotels", "hotels_com"),
)


def partner_id_for_site(site: str | None) -> str:
    """Map a free-text site name onto a catalog id, defaulting to the first partner."""
    lowered = (site or "").lower()
    for keyword, partner_id in PARTNER_SITE_KEYWORDS:
        if keyword in lowered:
            return partner_id
    return DEFAULT_PARTNER_ID
