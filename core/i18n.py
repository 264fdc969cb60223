"""
Bilingual text selection. Users pick EN, ZH or BILINGUAL ("en / zh").
"""
LANG_BILINGUAL = 'BILINGUAL'
LANG_ZH = 'ZH'
LANG_EN = 'EN'

LANGUAGE_CHOICES = [
    (LANG_BILINGUAL, 'Bilingual'),
    (LANG_ZH, '中文'),
    (LANG_EN, 'English'),
]
VALID_LANGS = {LANG_BILINGUAL, LANG_ZH, LANG_EN}


def t(lang, en, zh):
    if lang == LANG_EN:
        return en
    if lang == LANG_ZH:
        return zh
    return f"{en} / {zh}"


def request_lang(request):
    """Language of the authenticated user; BILINGUAL when anonymous or unset."""
    user = getattr(request, 'user', None)
    lang = getattr(user, 'language', None) if user is not None and user.is_authenticated else None
    return lang if lang in VALID_LANGS else LANG_BILINGUAL
