import pytest

from report_import.logic import derived


@pytest.mark.parametrize("celsius,expected", [
    (-24, 0.054),
    (-10, 0.25),
    (0, 0.4),
    (10, 0.63),
    (20, 1.0),
    (25, 1.25),
    (34, 1.872),
    (35, 2.0),
    (50, 3.98),
    (75, 12.6),
    (100, 40.0),
    (110, 63.2),
])
def test_tcf_table_points(celsius, expected):
    assert derived.tcf(celsius) == expected


@pytest.mark.parametrize("celsius", [-25, -40, 111, 200, 20.5, None, "20", True])
def test_tcf_off_table_is_one(celsius):
    assert derived.tcf(celsius) == 1.0


def test_tcf_table_covers_every_integer_degree():
    assert sorted(derived.TCF_TABLE) == list(range(-24, 111))


@pytest.mark.parametrize("fahrenheit,expected", [
    (68, 20),
    (95, 35),
    (32, 0),
    (50, 10),
    (33, 1),
    (-40, -40),
    (212, 100),
])
def test_celsius_rounds_to_integer(fahrenheit, expected):
    assert derived.celsius(fahrenheit) == expected


def test_corrected_reading_at_35c():
    assert derived.corrected_text("100", 35) == "200.00"
    assert derived.corrected(100, 35) == 200.0


@pytest.mark.parametrize("reading,celsius,expected", [
    ("100", 20, "100.00"),
    ("100", 21, "105.00"),
    ("1,500", 20, "1500.00"),
    ("10", -24, "0.54"),
    ("100", 150, "100.00"),
    ("", 35, ""),
    ("N/A", 35, ""),
    (">2000", 35, ""),
    (None, 35, ""),
])
def test_corrected_text(reading, celsius, expected):
    assert derived.corrected_text(reading, celsius) == expected


def test_correction_is_idempotent():
    first = derived.corrected_text("123.4", 30)
    assert derived.corrected_text("123.4", 30) == first


@pytest.mark.parametrize("value,expected", [
    ("12", 12),
    ("12.0", 12),
    ("3.5", 3.5),
    (" 7 ", 7),
    ("abc", 0),
    ("", 0),
    (None, 0),
    (True, 0),
    (float("nan"), 0),
    (float("inf"), 0),
])
def test_parse_number_or_zero(value, expected):
    assert derived.parse_number(value) == expected


def test_temperature_reading_defaults():
    reading = derived.temperature_reading()
    assert reading.model_dump() == {"fahrenheit": 68, "celsius": 20, "tcf": 1.0, "humidity": 50}


def test_temperature_reading_fahrenheit_wins():
    reading = derived.temperature_reading(fahrenheit_value="77", celsius_value="10", humidity="40")
    assert reading.fahrenheit == 77
    assert reading.celsius == 25
    assert reading.tcf == 1.25
    assert reading.humidity == 40


def test_temperature_reading_from_celsius_only():
    reading = derived.temperature_reading(celsius_value=35)
    assert reading.fahrenheit == 95
    assert reading.celsius == 35
    assert reading.tcf == 2.0


def test_temperature_reading_garbage_falls_back():
    reading = derived.temperature_reading(fahrenheit_value="hot", humidity="damp")
    assert reading.fahrenheit == 68
    assert reading.humidity == 50
