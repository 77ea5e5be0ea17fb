# Author: Eric Kow
# License: BSD3

"""
Languages a document may be written in.

The language is the second half of the key under which annotators
are looked up, so that (say) French tokens can be produced by a
different annotator than English ones.
"""

from enum import Enum


class Language(Enum):
    """
    A (small) inventory of languages, valued by ISO 639 code
    """
    ARABIC = 'ar'
    CHINESE = 'zh'
    DUTCH = 'nl'
    ENGLISH = 'en'
    FRENCH = 'fr'
    GERMAN = 'de'
    GREEK = 'el'
    ITALIAN = 'it'
    JAPANESE = 'ja'
    LATIN = 'la'
    PORTUGUESE = 'pt'
    RUSSIAN = 'ru'
    SPANISH = 'es'
    UNKNOWN = 'und'

    def __str__(self):
        return self.name

    @property
    def code(self):
        "ISO 639 code for this language"
        return self.value

    @classmethod
    def from_code(cls, code):
        """
        Return the language for either an ISO code (`fr`) or
        a name (`FRENCH`, `french`)

        Unrecognised codes map to `Language.UNKNOWN`
        """
        if isinstance(code, cls):
            return code
        if code is None:
            return cls.UNKNOWN
        code = code.strip()
        try:
            return cls(code.lower())
        except ValueError:
            pass
        return cls.__members__.get(code.upper(), cls.UNKNOWN)
