"""
Centralized Field Registry.

SINGLE SOURCE OF TRUTH for every field that can appear as a column in an
event sheet. All modules must import from here - no duplicate definitions
and no compiled-in column letters.

Column positions are never stored here. The SchemaMapper resolves each
registered field to a column index from the live header row on every sync,
so reordering, inserting or removing sheet columns needs no code change.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator

STATS_PREFIX = "stats."


class FieldType(str, Enum):
    """Value type of a sheet column."""

    UUID = "uuid"
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    TIMESTAMP = "timestamp"
    STATUS = "status"
    TEXT = "text"


@dataclass(frozen=True, slots=True)
class ComputedExpression:
    """
    Derived value expressed in terms of other fields of the same row.

    Only rendered at encode time, when it becomes a spreadsheet formula
    referencing the operand columns of the row being written.

    Attributes:
        operator: "sum" is the only operator the sheets use today
        operands: Canonical names of the fields combined by the operator
    """

    operator: str
    operands: tuple[str, ...]

    def render(
        self,
        column_of: Callable[[str], str | None],
        row_number: int,
    ) -> str | None:
        """
        Render as a formula, e.g. "=Z2+AA2+Y2".

        Args:
            column_of: Resolves a canonical field name to a column letter
            row_number: Row number to reference

        Returns:
            Formula text, or None if any operand column is absent
        """
        letters = [column_of(name) for name in self.operands]
        if not letters or any(letter is None for letter in letters):
            return None

        if self.operator == "sum":
            return "=" + "+".join(f"{letter}{row_number}" for letter in letters)

        raise ValueError(f"Unsupported computed operator: {self.operator}")


@dataclass(frozen=True, slots=True)
class FieldDefinition:
    """
    Complete description of one sheet field.

    Attributes:
        canonical_name: camelCase name headers normalize to (e.g. "remoteImages")
        path: Record location, "stats.<key>" for statistics
        type: Value type used for coercion
        required: Row is rejected when this cell is invalid
        read_only: System-managed, never imported from the sheet
        computed: Derived by a sheet formula, never imported
        expression: Formula definition for computed fields
        header: Display label used when setting up a new sheet
        aliases: Other header spellings that resolve to this field
    """

    canonical_name: str
    path: str
    type: FieldType = FieldType.NUMBER
    required: bool = False
    read_only: bool = False
    computed: bool = False
    expression: ComputedExpression | None = None
    header: str = ""
    aliases: tuple[str, ...] = ()

    @property
    def is_stat(self) -> bool:
        """True for fields stored in the record's attributes map."""
        return self.path.startswith(STATS_PREFIX)

    @property
    def stat_key(self) -> str:
        """Attribute key for stats fields (path without the prefix)."""
        return self.path[len(STATS_PREFIX):] if self.is_stat else ""

    @property
    def is_identity(self) -> bool:
        return self.type is FieldType.UUID

    @property
    def flags(self) -> list[str]:
        """Human readable flags for mapping views."""
        flags = []
        if self.required:
            flags.append("required")
        if self.read_only:
            flags.append("read-only")
        if self.computed:
            flags.append("computed")
        return flags


# ═══════════════════════════════════════════════════════════════════════════
# FIELD REGISTRY - THE SINGLE SOURCE OF TRUTH
# ═══════════════════════════════════════════════════════════════════════════

FIELD_REGISTRY: dict[str, FieldDefinition] = {}


def humanize(canonical_name: str) -> str:
    """Turn a camelCase name into a header label ("remoteImages" -> "Remote Images")."""
    words = re.findall(r"[A-Z]+(?=[A-Z][a-z]|\d|$)|[A-Z]?[a-z]+|[A-Z]+|\d+", canonical_name)
    return " ".join(word[:1].upper() + word[1:] for word in words)


def _register(field_def: FieldDefinition) -> FieldDefinition:
    """Register a field definition and return it."""
    if not field_def.header:
        field_def = FieldDefinition(
            canonical_name=field_def.canonical_name,
            path=field_def.path,
            type=field_def.type,
            required=field_def.required,
            read_only=field_def.read_only,
            computed=field_def.computed,
            expression=field_def.expression,
            header=humanize(field_def.canonical_name),
            aliases=field_def.aliases,
        )
    FIELD_REGISTRY[field_def.canonical_name] = field_def
    return field_def


def _stat(
    name: str,
    field_type: FieldType = FieldType.NUMBER,
    header: str = "",
    aliases: tuple[str, ...] = (),
) -> FieldDefinition:
    return _register(
        FieldDefinition(
            canonical_name=name,
            path=f"{STATS_PREFIX}{name}",
            type=field_type,
            header=header,
            aliases=aliases,
        )
    )


# ─────────────────────────────────────────────────────────────────────────────
# Core system fields
# ─────────────────────────────────────────────────────────────────────────────

SYNC_UUID = _register(
    FieldDefinition(
        canonical_name="syncUuid",
        path="identity_token",
        type=FieldType.UUID,
        read_only=True,
        header="Event UUID",
        aliases=("MessMass UUID", "UUID", "googleSheetUuid"),
    )
)

PARTNER_1 = _register(
    FieldDefinition(
        canonical_name="partner1Name",
        path="descriptor1",
        type=FieldType.STRING,
        header="Partner 1 (Home)",
        aliases=("Partner 1", "Home"),
    )
)

PARTNER_2 = _register(
    FieldDefinition(
        canonical_name="partner2Name",
        path="descriptor2",
        type=FieldType.STRING,
        header="Partner 2 (Away)",
        aliases=("Partner 2", "Away"),
    )
)

EVENT_TITLE = _register(
    FieldDefinition(
        canonical_name="eventTitle",
        path="title",
        type=FieldType.STRING,
        header="Event Title (Custom)",
    )
)

EVENT_NAME = _register(
    FieldDefinition(
        canonical_name="eventName",
        path="name",
        type=FieldType.STRING,
        read_only=True,
        header="Event Name (Auto)",
    )
)

EVENT_DATE = _register(
    FieldDefinition(
        canonical_name="eventDate",
        path="date",
        type=FieldType.DATE,
        required=True,
        header="Event Date",
    )
)

# ─────────────────────────────────────────────────────────────────────────────
# Statistics
# ─────────────────────────────────────────────────────────────────────────────

for _name in (
    "totalGames",
    "gamesWithoutAds",
    "gamesWithAds",
    "gamesWithoutSlideshow",
    "gamesWithSlideshow",
    "gamesWithoutTech",
    "gamesWithSelfie",
    "gamesWithoutSelfie",
    "eventAttendees",
    "uniqueUsers",
    "newUsersAdded",
    "userRegistration",
    "userRegistrationHostess",
    "marketingOptin",
    "female",
    "male",
    "selfies",
    "remoteImages",
    "hostessImages",
    "remoteFans",
):
    _stat(_name)

_stat("stadium", header="Stadium Fans")

for _name in (
    "visitQrCode",
    "ventQr",
    "bitlyClicksFromQRCode",
    "qrscanIphone",
    "qrscanAndroid",
    "visitShortUrl",
):
    _stat(_name)

_stat("ventUrl", FieldType.STRING)

for _name in (
    "directUrl",
    "ventCtaEmail",
    "ventFacebook",
    "ventGoogle",
    "ventInstagram",
    "bitlyClicksFromFacebook",
    "bitlyClicksFromInstagram",
    "bitlyClicksFromTwitter",
    "bitlyClicksFromLinkedIn",
    "bitlyClicksFromGoogle",
    "socialVisit",
    "visitCta1",
    "visitCta2",
    "visitCta3",
    "outdoor",
    "eventResultHome",
    "eventResultVisitor",
    "eventTicketPurchases",
    "approvedImages",
    "rejectedImages",
    "genAlpha",
    "genYZ",
    "genX",
    "boomer",
    "merched",
    "jersey",
    "scarf",
    "flags",
    "baseballCap",
    "Caps",
    "specialMerch",
    "other",
    "visitWeb",
    "visitFacebook",
    "visitInstagram",
    "visitYoutube",
    "visitTiktok",
    "visitX",
    "visitTrustpilot",
    "ventAndroid",
    "ventIos",
    "ventCtaPopup",
    "countriesReached",
    "walletPasses",
):
    _stat(_name)

for _position in ("one", "two", "three", "four", "five"):
    _stat(f"topCountry{_position}", FieldType.STRING)

for _name in (
    "totalBitlyClicks",
    "uniqueBitlyClicks",
    "bitlyMobileClicks",
    "bitlyDesktopClicks",
    "bitlyTabletClicks",
):
    _stat(_name)

_stat("bitlyTopCountry", FieldType.STRING)

for _name in (
    "bitlyClicksFromInstagramApp",
    "bitlyClicksFromFacebookMobile",
    "bitlyClicksFromDirect",
):
    _stat(_name)

for _index in range(1, 21):
    _stat(f"reportImage{_index}", FieldType.STRING)
    _stat(f"reportText{_index}", FieldType.STRING)

# ─────────────────────────────────────────────────────────────────────────────
# Computed fields (sheet formulas)
# ─────────────────────────────────────────────────────────────────────────────

TOTAL_FANS = _register(
    FieldDefinition(
        canonical_name="totalFans",
        path="stats.totalFans",
        computed=True,
        expression=ComputedExpression("sum", ("remoteFans", "stadium")),
    )
)

ALL_IMAGES = _register(
    FieldDefinition(
        canonical_name="allImages",
        path="stats.allImages",
        computed=True,
        expression=ComputedExpression(
            "sum", ("remoteImages", "hostessImages", "selfies")
        ),
    )
)

# ─────────────────────────────────────────────────────────────────────────────
# Metadata
# ─────────────────────────────────────────────────────────────────────────────

LAST_MODIFIED = _register(
    FieldDefinition(
        canonical_name="lastModified",
        path="source_modified_at",
        type=FieldType.TIMESTAMP,
    )
)

SYNC_STATUS = _register(
    FieldDefinition(
        canonical_name="syncStatus",
        path="sync_status",
        type=FieldType.STATUS,
        read_only=True,
    )
)

NOTES = _register(
    FieldDefinition(
        canonical_name="notes",
        path="notes",
        type=FieldType.TEXT,
    )
)


# Default column order for a freshly set-up sheet. Identity first (column A).
DEFAULT_LAYOUT: tuple[str, ...] = (
    "syncUuid",
    "partner1Name",
    "partner2Name",
    "eventTitle",
    "eventName",
    "eventDate",
    "eventAttendees",
    "eventResultHome",
    "eventResultVisitor",
    "remoteImages",
    "hostessImages",
    "selfies",
    "allImages",
    "remoteFans",
    "stadium",
    "totalFans",
    "female",
    "male",
    "genAlpha",
    "genYZ",
    "genX",
    "boomer",
    "merched",
    "jersey",
    "scarf",
    "flags",
    "baseballCap",
    "other",
    "visitQrCode",
    "visitShortUrl",
    "visitWeb",
    "visitFacebook",
    "visitInstagram",
    "visitYoutube",
    "visitTiktok",
    "visitX",
    "visitTrustpilot",
    "totalBitlyClicks",
    "uniqueBitlyClicks",
    "reportImage1",
    "reportImage2",
    "reportImage3",
    "reportText1",
    "reportText2",
    "reportText3",
    "lastModified",
    "syncStatus",
    "notes",
)


# ═══════════════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════════


def get_field(canonical_name: str) -> FieldDefinition | None:
    """Get field by canonical name. Returns None if not found."""
    return FIELD_REGISTRY.get(canonical_name)


def iter_fields() -> Iterator[FieldDefinition]:
    return iter(FIELD_REGISTRY.values())


def get_computed_fields() -> list[FieldDefinition]:
    """Get all formula-derived fields."""
    return [f for f in FIELD_REGISTRY.values() if f.computed]


def get_identity_field() -> FieldDefinition:
    return SYNC_UUID


def default_headers() -> list[str]:
    """Header labels for a new sheet, in DEFAULT_LAYOUT order."""
    return [FIELD_REGISTRY[name].header for name in DEFAULT_LAYOUT]
