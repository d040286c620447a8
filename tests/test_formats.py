import math

from document_scanner.formats import (
    A4_PORTRAIT,
    DEFAULT_FORMAT,
    LETTER_LANDSCAPE,
    SQUARE,
    STANDARD_FORMATS,
    find_closest_standard_ratio,
    find_format,
    format_names,
)


class TestFormats:

    def test_default_is_letter_portrait(self):
        assert DEFAULT_FORMAT.name == "Letter Portrait"
        assert DEFAULT_FORMAT.ratio == 8.5 / 11
        assert DEFAULT_FORMAT.is_portrait

    def test_standard_formats(self):
        assert len(STANDARD_FORMATS) == 7
        assert format_names()[0] == "Letter Portrait"
        assert A4_PORTRAIT.ratio == 1 / math.sqrt(2)
        assert not SQUARE.is_portrait

    def test_find_format_is_forgiving(self):
        assert find_format("a4 portrait") is A4_PORTRAIT
        assert find_format("letter-landscape") is LETTER_LANDSCAPE
        assert find_format("ID Card").category == "card"
        assert find_format("Tabloid") is None

    def test_closest_ratio(self):
        assert find_closest_standard_ratio(0.71) is A4_PORTRAIT
        assert find_closest_standard_ratio(1.02) is SQUARE
        assert find_closest_standard_ratio(1.75).name == "Business Card (US)"

    def test_closest_ratio_outside_tolerance(self):
        assert find_closest_standard_ratio(3.0) is None
        assert find_closest_standard_ratio(0.71, tolerance=0.001) is None

    def test_closest_ratio_invalid(self):
        assert find_closest_standard_ratio(0) is None
        assert find_closest_standard_ratio(-1.0) is None
