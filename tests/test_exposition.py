"""Tests for the /metrics text format."""

from airgradient_bridge.models import Reading
from airgradient_bridge.services import render_metrics

EXPECTED = """
# HELP instance The ID of the AirGradient sensor.
# instance sensor7

# HELP wifi Current WiFi signal strength, in dB
# TYPE wifi gauge
wifi -73

# HELP pm02 Particulate Matter PM2.5 value
# TYPE pm02 gauge
pm02 297

# HELP rco2 CO2 value, in ppm
# TYPE rco2 gauge
rco2 1009

# HELP atmp Temperature, in degrees Celsius
# TYPE atmp gauge
atmp 26.100000

# HELP rhum Relative humidity, in percent
# TYPE rhum gauge
rhum 51
"""


def test_renders_exact_template():
    reading = Reading(instance_id="sensor7", timestamp=1, wifi=-73, pm25=297, co2=1009,
                      temperature=26.1, humidity=51)
    assert render_metrics(reading) == EXPECTED


def test_zero_reading():
    text = render_metrics(Reading())
    assert "# instance null\n" in text
    assert "\npm02 0\n" in text
    assert "\natmp 0.000000\n" in text


def test_negative_temperature():
    assert "\natmp -5.250000\n" in render_metrics(Reading(temperature=-5.25))
