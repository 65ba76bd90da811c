"""Code system enumerations for clinical directory records.

Every enumerated field on a domain record is bound to a FHIR code system.
The enum members hold the codes; ``system_uri()`` returns the canonical URI
emitted alongside the code when the field is rendered into an answer tree.

Architecture:
    - Pure domain definitions with zero infrastructure dependencies
    - ``str`` mixin keeps members JSON-serializable and comparable to codes
"""

from enum import Enum
from typing import Optional, Type, TypeVar

from src.domain.utils import capitalize_code

E = TypeVar("E", bound="CodedEnum")


class CodedEnum(str, Enum):
    """Base class for enums bound to a FHIR code system."""

    @classmethod
    def system_uri(cls) -> str:
        raise NotImplementedError

    @classmethod
    def from_code(cls: Type[E], code: object) -> Optional[E]:
        """Return the member for ``code`` or None when the code is unknown.

        Parameters:
            code: Raw code value (usually a string from an answer leaf)

        Returns:
            Matching member, or None for unknown codes and non-strings
        """
        if not isinstance(code, str):
            return None
        try:
            return cls(code.strip())
        except ValueError:
            return None

    @property
    def display(self) -> str:
        """Human-readable display derived from the code."""
        return capitalize_code(self.value)


class RecordKind(str, Enum):
    """Record kinds handled by the mapping engine, valued by FHIR resource type."""
    PERSON = "Practitioner"
    ORGANIZATION = "Organization"
    LOCATION = "Location"
    ROLE_ASSIGNMENT = "PractitionerRole"

    @classmethod
    def parse(cls, value: "str | RecordKind") -> "RecordKind":
        """Accept a member, a resource type, or a kind slug such as ``role-assignment``."""
        if isinstance(value, RecordKind):
            return value
        normalized = str(value).strip()
        for member in cls:
            if normalized == member.value or normalized.lower() == member.slug:
                return member
        raise ValueError(f"Unknown record kind: {value}")

    @property
    def slug(self) -> str:
        return self.name.lower().replace("_", "-")


class NameUse(CodedEnum):
    """FHIR NameUse."""
    USUAL = "usual"
    OFFICIAL = "official"
    TEMP = "temp"
    NICKNAME = "nickname"
    ANONYMOUS = "anonymous"
    OLD = "old"
    MAIDEN = "maiden"

    @classmethod
    def system_uri(cls) -> str:
        return "http://hl7.org/fhir/name-use"


class IdentifierUse(CodedEnum):
    """FHIR IdentifierUse."""
    USUAL = "usual"
    OFFICIAL = "official"
    TEMP = "temp"
    SECONDARY = "secondary"
    OLD = "old"

    @classmethod
    def system_uri(cls) -> str:
        return "http://hl7.org/fhir/identifier-use"


class ContactPointSystem(CodedEnum):
    """FHIR ContactPointSystem."""
    PHONE = "phone"
    FAX = "fax"
    EMAIL = "email"
    PAGER = "pager"
    URL = "url"
    SMS = "sms"
    OTHER = "other"

    @classmethod
    def system_uri(cls) -> str:
        return "http://hl7.org/fhir/contact-point-system"


class ContactPointUse(CodedEnum):
    """FHIR ContactPointUse."""
    HOME = "home"
    WORK = "work"
    TEMP = "temp"
    OLD = "old"
    MOBILE = "mobile"

    @classmethod
    def system_uri(cls) -> str:
        return "http://hl7.org/fhir/contact-point-use"


class AddressUse(CodedEnum):
    """FHIR AddressUse."""
    HOME = "home"
    WORK = "work"
    TEMP = "temp"
    OLD = "old"
    BILLING = "billing"

    @classmethod
    def system_uri(cls) -> str:
        return "http://hl7.org/fhir/address-use"


class AddressType(CodedEnum):
    """FHIR AddressType."""
    POSTAL = "postal"
    PHYSICAL = "physical"
    BOTH = "both"

    @classmethod
    def system_uri(cls) -> str:
        return "http://hl7.org/fhir/address-type"


class AdministrativeGender(CodedEnum):
    """FHIR AdministrativeGender."""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    UNKNOWN = "unknown"

    @classmethod
    def system_uri(cls) -> str:
        return "http://hl7.org/fhir/administrative-gender"


class LocationStatus(CodedEnum):
    """FHIR LocationStatus."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"

    @classmethod
    def system_uri(cls) -> str:
        return "http://hl7.org/fhir/location-status"


class LocationMode(CodedEnum):
    """FHIR LocationMode."""
    INSTANCE = "instance"
    KIND = "kind"

    @classmethod
    def system_uri(cls) -> str:
        return "http://hl7.org/fhir/location-mode"


class ResponseStatus(str, Enum):
    """QuestionnaireResponse status."""
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    AMENDED = "amended"
    ENTERED_IN_ERROR = "entered-in-error"
    STOPPED = "stopped"


class ItemType(str, Enum):
    """Questionnaire item types understood by the schema model."""
    GROUP = "group"
    DISPLAY = "display"
    STRING = "string"
    TEXT = "text"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATE = "date"
    DATE_TIME = "dateTime"
    TIME = "time"
    URL = "url"
    URI = "uri"
    CODING = "coding"
    REFERENCE = "reference"
    QUANTITY = "quantity"


class Severity(str, Enum):
    """Validation finding severity."""
    ERROR = "error"
    WARNING = "warning"
