import re

COUNTRY_CODE = "55"


def normalize_phone(raw: str | None) -> str:
    """Digits-only Brazilian number with country code, as Z-API expects (5511987654321)."""
    digits = re.sub(r"\D", "", str(raw or ""))
    if not digits:
        return ""
    digits = digits.lstrip("0")
    # Local numbers carry a two-digit area code plus 8 or 9 digits.
    if len(digits) in (10, 11):
        return f"{COUNTRY_CODE}{digits}"
    return digits
