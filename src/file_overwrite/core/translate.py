"""Character-set translation in the style of ``tr``."""


def expand_charset(charset: str) -> list[str]:
    """Expand ranges like ``a-z`` in a character set.

    A backslash makes the next character literal, and a ``-`` at either
    end of the set is literal as well.
    """
    chars = []
    i = 0
    while i < len(charset):
        char = charset[i]
        if char == "\\" and i + 1 < len(charset):
            chars.append(charset[i + 1])
            i += 2
            continue

        if i + 2 < len(charset) and charset[i + 1] == "-":
            last = charset[i + 2]
            if ord(last) < ord(char):
                raise ValueError(f"Invalid range {char}-{last} in {charset!r}")
            chars.extend(chr(code) for code in range(ord(char), ord(last) + 1))
            i += 3
        else:
            chars.append(char)
            i += 1
    return chars


class CharTranslator:
    """Translate characters of from_set to the matching ones of to_set.

    ``to_set`` is padded with its last character when shorter than
    ``from_set``; an empty ``to_set`` deletes the matched characters.
    A leading ``^`` in ``from_set`` selects every character not listed,
    all of which map to the last character of ``to_set``.
    """

    def __init__(self, from_set: str, to_set: str):
        self.negate = len(from_set) > 1 and from_set.startswith("^")
        source = expand_charset(from_set[1:] if self.negate else from_set)
        self.source = set(source)
        self.target = expand_charset(to_set)
        self.mapping = {}
        if self.target and not self.negate:
            for index, char in enumerate(source):
                self.mapping[char] = self.target[min(index, len(self.target) - 1)]

    def _selected(self, char: str) -> bool:
        return (char not in self.source) if self.negate else (char in self.source)

    def translate(self, text: str, squeeze: bool = False) -> str:
        """Translate text; with squeeze, runs of one translated character collapse."""
        out = []
        last_translated = None
        for char in text:
            if not self._selected(char):
                out.append(char)
                last_translated = None
                continue
            if not self.target:
                continue

            new = self.target[-1] if self.negate else self.mapping[char]
            if squeeze and new == last_translated:
                continue
            out.append(new)
            last_translated = new
        return "".join(out)


def tr(text: str, from_set: str, to_set: str) -> str:
    return CharTranslator(from_set, to_set).translate(text)


def tr_s(text: str, from_set: str, to_set: str) -> str:
    return CharTranslator(from_set, to_set).translate(text, squeeze=True)
