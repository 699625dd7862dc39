"""Form checks for sign-up passwords and buyer documents and phones.

Validators return ``None`` when the value is acceptable and a user-facing
message otherwise, so a form can show one message per field.
"""

from __future__ import annotations

import logging
import re

from pydantic import BaseModel

from ticketoffice.models import BuyerData, CountryConfig, DocumentType

log = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Passwords
# ------------------------------------------------------------------


class PasswordStrength(BaseModel):
    score: int
    label: str
    color: str


_STRENGTHS = (
    PasswordStrength(score=0, label="Muy débil", color="error"),
    PasswordStrength(score=1, label="Débil", color="warning"),
    PasswordStrength(score=2, label="Aceptable", color="info"),
    PasswordStrength(score=3, label="Fuerte", color="success"),
    PasswordStrength(score=4, label="Excelente", color="success"),
)

MIN_PASSWORD_LENGTH = 8


def has_lower(s: str) -> bool:
    return re.search(r"[a-z]", s) is not None


def has_upper(s: str) -> bool:
    return re.search(r"[A-Z]", s) is not None


def has_number(s: str) -> bool:
    return re.search(r"\d", s) is not None


def _password_checks(pwd: str) -> list[bool]:
    return [len(pwd) >= MIN_PASSWORD_LENGTH, has_lower(pwd), has_upper(pwd), has_number(pwd)]


def meets_basic_password_rules(pwd: str) -> bool:
    """At least 8 characters with a lowercase letter, an uppercase letter and a digit."""
    return all(_password_checks(pwd))


def password_strength(pwd: str | None) -> PasswordStrength:
    """Score 0-4: one point per basic rule met."""
    if not pwd:
        return _STRENGTHS[0]
    return _STRENGTHS[sum(_password_checks(pwd))]


# ------------------------------------------------------------------
# Identity documents
# ------------------------------------------------------------------


class DocumentRule(BaseModel):
    pattern: str
    format: str
    min_length: int
    max_length: int
    placeholder: str


# Used when the country config has no usable regex for the type.
DOCUMENT_RULES: dict[str, DocumentRule] = {
    "DNI": DocumentRule(pattern=r"\d{7,8}", format="Digits only, 7-8 digits",
                        min_length=7, max_length=8, placeholder="Ej: 12345678"),
    "CC": DocumentRule(pattern=r"\d{6,10}", format="Digits only, 6-10 digits",
                       min_length=6, max_length=10, placeholder="Ej: 1234567890"),
    "CE": DocumentRule(pattern=r"\d{6,10}", format="Digits only, 6-10 digits",
                       min_length=6, max_length=10, placeholder="Ej: 1234567890"),
    "TI": DocumentRule(pattern=r"\d{10,11}", format="Digits only, 10-11 digits",
                       min_length=10, max_length=11, placeholder="Ej: 12345678901"),
    "PASSPORT": DocumentRule(pattern=r"[A-Z0-9]{6,12}", format="Letters and digits, 6-12 characters",
                             min_length=6, max_length=12, placeholder="Ej: ABC123456"),
    "OTHER": DocumentRule(pattern=r"[A-Z0-9]{4,20}", format="Letters and digits, 4-20 characters",
                          min_length=4, max_length=20, placeholder="Número de documento"),
}


def document_rule(document_type: str | None) -> DocumentRule:
    return DOCUMENT_RULES.get((document_type or "").upper(), DOCUMENT_RULES["OTHER"])


def document_placeholder(document_type: str | None) -> str:
    return document_rule(document_type).placeholder


def validate_document(
    document: str | None,
    document_type: str | None,
    config: DocumentType | None = None,
) -> str | None:
    """Check *document* against the backend regex, else the built-in rule for its type."""
    if not document or not document.strip():
        return "The document number is required."
    cleaned = document.strip().upper()

    if config is not None and config.regex:
        try:
            matched = re.search(config.regex, cleaned) is not None
        except re.error:
            log.warning("Ignoring invalid document regex for %s: %r", config.code, config.regex)
        else:
            if matched:
                return None
            if config.format:
                return f"Invalid format. Expected: {config.format}"
            return "The document number is not valid."

    rule = document_rule(document_type)
    if len(cleaned) < rule.min_length:
        return f"The document must have at least {rule.min_length} characters."
    if len(cleaned) > rule.max_length:
        return f"The document must not exceed {rule.max_length} characters."
    if re.fullmatch(rule.pattern, cleaned) is None:
        return f"Invalid format. {rule.format}"
    return None


# ------------------------------------------------------------------
# Phones
# ------------------------------------------------------------------


class PhoneRule(BaseModel):
    country_code: str
    prefix: str
    pattern: str
    format: str
    min_length: int
    max_length: int
    placeholder: str


PHONE_RULES: dict[str, PhoneRule] = {
    "ARG": PhoneRule(
        country_code="ARG",
        prefix="+54",
        pattern=r"(\+54)?\s?(9)?\s?([1-9]\d{1,3})[\s-]?(\d{6,8})",
        format="+54 9 XXXX XXXXXX",
        min_length=10,
        max_length=13,
        placeholder="Ej: 11 1234 5678",
    ),
    "COL": PhoneRule(
        country_code="COL",
        prefix="+57",
        pattern=r"(\+57)?\s?(3\d{2})[\s-]?(\d{3})[\s-]?(\d{4})",
        format="+57 3XX XXX XXXX",
        min_length=10,
        max_length=12,
        placeholder="Ej: 314 542 9669",
    ),
    "OTHER": PhoneRule(
        country_code="OTHER",
        prefix="",
        pattern=r"\+?[\d\s-]{7,15}",
        format="International number",
        min_length=7,
        max_length=15,
        placeholder="Ej: +1 234 567 8900",
    ),
}


def phone_rule(country_code: str | None) -> PhoneRule:
    return PHONE_RULES.get((country_code or "").upper(), PHONE_RULES["OTHER"])


def validate_phone(phone: str | None, country_code: str | None) -> str | None:
    if not phone or not phone.strip():
        return "The phone number is required."
    rule = phone_rule(country_code)
    compact = re.sub(r"[\s-]", "", phone)
    if len(compact) < rule.min_length:
        return f"The phone number must have at least {rule.min_length} digits."
    if len(compact) > rule.max_length:
        return f"The phone number must not exceed {rule.max_length} digits."
    if re.fullmatch(rule.pattern, phone) is None:
        return f"Invalid format. {rule.format}"
    return None


def format_phone_display(phone: str, country_code: str | None) -> str:
    """Group local digits for display; unknown countries are left as typed."""
    digits = re.sub(r"\D", "", phone)
    if len(digits) >= 10:
        if country_code == "ARG":
            return f"{digits[:2]} {digits[2:6]} {digits[6:10]}"
        if country_code == "COL":
            return f"{digits[:3]} {digits[3:6]} {digits[6:10]}"
    return phone


def buyer_errors(buyer: BuyerData, config: CountryConfig | None = None) -> dict[str, str]:
    """Field name -> message for every buyer field that fails its check.

    The phone is checked against the buyer's nationality. The document uses
    the matching document type from *config* when there is one.
    """
    errors: dict[str, str] = {}
    doc_config = None
    if config is not None:
        doc_config = next(
            (d for d in config.document_type if d.code == buyer.document_type), None
        )
    message = validate_document(buyer.document, buyer.document_type, doc_config)
    if message:
        errors["document"] = message
    message = validate_phone(buyer.phone, buyer.nationality)
    if message:
        errors["phone"] = message
    return errors
