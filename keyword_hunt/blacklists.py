"""Per-locale terms that are never worth a keyword slot ("free" and friends)."""

from .locales import LocaleCode

_CHINESE_BRANDS = ["GPT", "OpenAI", "ChatGPT"]

BLACKLISTS = {
    LocaleCode.EN_US: ["free"],
    LocaleCode.EN_GB: ["free"],
    LocaleCode.EN_AU: ["free"],
    LocaleCode.EN_CA: ["free"],
    LocaleCode.ZH_HANS: ["免费"] + _CHINESE_BRANDS,
    LocaleCode.ZH_HANT: ["免費"] + _CHINESE_BRANDS,
    LocaleCode.ES_ES: ["gratis"],
    LocaleCode.ES_MX: ["gratis"],
    LocaleCode.FR_FR: ["gratuit"],
    LocaleCode.FR_CA: ["gratuit"],
    LocaleCode.PT_PT: ["gratuito"],
    LocaleCode.PT_BR: ["gratuito"],
    LocaleCode.AR_SA: ["مجاني"],
    LocaleCode.CA: ["gratuït"],
    LocaleCode.HR: ["besplatno"],
    LocaleCode.CS: ["zdarma"],
    LocaleCode.DA: ["gratis"],
    LocaleCode.NL_NL: ["gratis"],
    LocaleCode.FI: ["ilmainen"],
    LocaleCode.DE_DE: ["kostenlos"],
    LocaleCode.EL: ["δωρεάν"],
    LocaleCode.HE: ["חינם"],
    LocaleCode.HI: ["मुफ्त"],
    LocaleCode.HU: ["ingyenes"],
    LocaleCode.ID: ["gratis"],
    LocaleCode.IT: ["gratuito"],
    LocaleCode.JA: ["無料"],
    LocaleCode.KO: ["무료"],
    LocaleCode.MS: ["percuma"],
    LocaleCode.NO: ["gratis"],
    LocaleCode.PL: ["za darmo"],
    LocaleCode.RO: ["gratuit"],
    LocaleCode.RU: ["бесплатно"],
    LocaleCode.SK: ["zadarmo"],
    LocaleCode.SV: ["gratis"],
    LocaleCode.TH: ["ฟรี"],
    LocaleCode.TR: ["ücretsiz"],
    LocaleCode.UK: ["безкоштовно"],
    LocaleCode.VI: ["miễn phí"],
}


def get_blacklist(locale) -> set[str]:
    return {term.lower() for term in BLACKLISTS.get(LocaleCode(locale), [])}


def filter_blacklisted(locale, keywords: list[str]) -> list[str]:
    blacklist = get_blacklist(locale)
    return [kw for kw in keywords if kw.strip().lower() not in blacklist]
