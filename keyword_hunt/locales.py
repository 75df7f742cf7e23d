"""
App Store Connect locales and the search storefront each one maps to.

Every locale resolves to exactly one country code (the iTunes storefront
searched for keyword signals) and one display name.  Unknown codes are a
configuration error and never fall back to a default storefront.
"""

import enum

from .errors import InvalidParamsError, UnsupportedLocaleError


class LocaleCode(str, enum.Enum):
    EN_US = "en-US"
    EN_GB = "en-GB"
    EN_AU = "en-AU"
    EN_CA = "en-CA"
    ZH_HANS = "zh-Hans"
    ZH_HANT = "zh-Hant"
    ES_ES = "es-ES"
    ES_MX = "es-MX"
    FR_FR = "fr-FR"
    FR_CA = "fr-CA"
    PT_PT = "pt-PT"
    PT_BR = "pt-BR"
    AR_SA = "ar-SA"
    CA = "ca"
    HR = "hr"
    CS = "cs"
    DA = "da"
    NL_NL = "nl-NL"
    FI = "fi"
    DE_DE = "de-DE"
    EL = "el"
    HE = "he"
    HI = "hi"
    HU = "hu"
    ID = "id"
    IT = "it"
    JA = "ja"
    KO = "ko"
    MS = "ms"
    NO = "no"
    PL = "pl"
    RO = "ro"
    RU = "ru"
    SK = "sk"
    SV = "sv"
    TH = "th"
    TR = "tr"
    UK = "uk"
    VI = "vi"

    def __str__(self):
        return self.value


# locale -> (storefront country, display name)
LOCALES = {
    LocaleCode.EN_US: ("us", "English (US)"),
    LocaleCode.EN_GB: ("gb", "English (UK)"),
    LocaleCode.EN_AU: ("au", "English (Australia)"),
    LocaleCode.EN_CA: ("ca", "English (Canada)"),
    LocaleCode.ZH_HANS: ("cn", "Chinese (Simplified)"),
    LocaleCode.ZH_HANT: ("tw", "Chinese (Traditional)"),
    LocaleCode.ES_ES: ("es", "Spanish"),
    LocaleCode.ES_MX: ("mx", "Spanish (Mexico)"),
    LocaleCode.FR_FR: ("fr", "French"),
    LocaleCode.FR_CA: ("ca", "French (Canadian)"),
    LocaleCode.PT_PT: ("pt", "Portuguese"),
    LocaleCode.PT_BR: ("br", "Portuguese (Brazil)"),
    LocaleCode.AR_SA: ("sa", "Arabic"),
    LocaleCode.CA: ("es", "Catalan"),
    LocaleCode.HR: ("hr", "Croatian"),
    LocaleCode.CS: ("cz", "Czech"),
    LocaleCode.DA: ("dk", "Danish"),
    LocaleCode.NL_NL: ("nl", "Dutch"),
    LocaleCode.FI: ("fi", "Finnish"),
    LocaleCode.DE_DE: ("de", "German"),
    LocaleCode.EL: ("gr", "Greek"),
    LocaleCode.HE: ("il", "Hebrew"),
    LocaleCode.HI: ("in", "Hindi"),
    LocaleCode.HU: ("hu", "Hungarian"),
    LocaleCode.ID: ("id", "Indonesian"),
    LocaleCode.IT: ("it", "Italian"),
    LocaleCode.JA: ("jp", "Japanese"),
    LocaleCode.KO: ("kr", "Korean"),
    LocaleCode.MS: ("my", "Malay"),
    LocaleCode.NO: ("no", "Norwegian"),
    LocaleCode.PL: ("pl", "Polish"),
    LocaleCode.RO: ("ro", "Romanian"),
    LocaleCode.RU: ("ru", "Russian"),
    LocaleCode.SK: ("sk", "Slovak"),
    LocaleCode.SV: ("se", "Swedish"),
    LocaleCode.TH: ("th", "Thai"),
    LocaleCode.TR: ("tr", "Turkish"),
    LocaleCode.UK: ("ua", "Ukrainian"),
    LocaleCode.VI: ("vn", "Vietnamese"),
}

LOCALE_CHOICES = [(code.value, name) for code, (_, name) in LOCALES.items()]


def parse_locale(value) -> LocaleCode:
    """Convert request input to a LocaleCode; unknown codes are invalid params."""
    try:
        return LocaleCode(value)
    except ValueError:
        raise InvalidParamsError(f"Unsupported locale: {value}")


def _lookup(locale) -> tuple[str, str]:
    try:
        return LOCALES[LocaleCode(locale)]
    except (KeyError, ValueError):
        raise UnsupportedLocaleError(f"Unsupported locale: {locale}")


def get_country_code(locale) -> str:
    return _lookup(locale)[0]


def get_locale_name(locale) -> str:
    return _lookup(locale)[1]


def get_language(locale) -> str:
    """Language parameter for the search API (``zh-CN``/``zh-TW`` for Chinese)."""
    _lookup(locale)
    code = LocaleCode(locale)
    if code is LocaleCode.ZH_HANS:
        return "zh-CN"
    if code is LocaleCode.ZH_HANT:
        return "zh-TW"
    return code.value.lower()
