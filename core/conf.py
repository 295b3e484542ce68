"""Access to the ``WORKSHOP`` settings dict with defaults."""

from django.conf import settings

DEFAULTS = {
    'STRICT_TRANSITIONS': True,
    'OVERPAYMENT_TOLERANCE': '0.01',
    'DEFAULT_PHONE_REGION': 'GH',
    'CURRENCY_SYMBOL': 'GH₵',
}


def workshop_setting(name: str):
    """Return ``settings.WORKSHOP[name]``, falling back to the default.

    Read on every call so ``override_settings`` works in tests.
    """
    if name not in DEFAULTS:
        raise KeyError(f'Unknown WORKSHOP setting: {name}')
    return getattr(settings, 'WORKSHOP', {}).get(name, DEFAULTS[name])
