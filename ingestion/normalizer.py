"""
Text normalization module.
Cleans raw PDF text while keeping the punctuation medical content relies on.
"""
import re

# Anything that is not a word character, whitespace or . , ( ) - : ;
_DISALLOWED = re.compile(r"[^\w\s.,()\-:;]")
_BLANK_LINES = re.compile(r"\n\s*\n")
_SPACES = re.compile(r" +")


class TextNormalizer:
    """
    Limpia el texto extraído de un PDF.
    Conserva los saltos de párrafo y la puntuación científica básica.
    """

    def normalize(self, text: str) -> str:
        if not text:
            return ""
        text = _DISALLOWED.sub(" ", text)
        text = _BLANK_LINES.sub("\n\n", text)
        text = _SPACES.sub(" ", text)
        return text.strip()


def normalize_text(text: str) -> str:
    """Quick normalization helper."""
    return TextNormalizer().normalize(text)
