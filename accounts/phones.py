"""Phone number normalisation backed by ``phonenumbers``."""

import re

import phonenumbers

from core.conf import workshop_setting


def normalize_phone(raw, region=None) -> str:
    """Return ``raw`` in E.164 form.

    Local numbers (``024 123 4567``) are parsed against the workshop's default
    region. Raises ``ValueError`` when the number is not valid.
    """
    phone_input = str(raw or '').strip()
    if not phone_input:
        raise ValueError('Phone number is required.')

    clean_phone = re.sub(r'(?<!^)\+|[^\d+]', '', phone_input)
    if clean_phone.startswith('00'):
        clean_phone = '+' + clean_phone[2:]

    try:
        parsed = phonenumbers.parse(clean_phone, None if clean_phone.startswith('+') else (region or workshop_setting('DEFAULT_PHONE_REGION')))
    except phonenumbers.NumberParseException as exc:
        raise ValueError(f'Phone number {phone_input} is not valid.') from exc

    if not phonenumbers.is_valid_number(parsed):
        raise ValueError(f'Phone number {phone_input} is not valid.')
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
