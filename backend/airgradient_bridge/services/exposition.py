"""
Prometheus-style text output for /metrics.

The layout (order, HELP text, labels) is fixed; dashboards and scrape
configs out there depend on it.
"""

from airgradient_bridge.models import Reading

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

METRICS_TEMPLATE = """
# HELP instance The ID of the AirGradient sensor.
# instance {instance_id}

# HELP wifi Current WiFi signal strength, in dB
# TYPE wifi gauge
wifi {wifi:d}

# HELP pm02 Particulate Matter PM2.5 value
# TYPE pm02 gauge
pm02 {pm25:d}

# HELP rco2 CO2 value, in ppm
# TYPE rco2 gauge
rco2 {co2:d}

# HELP atmp Temperature, in degrees Celsius
# TYPE atmp gauge
atmp {temperature:f}

# HELP rhum Relative humidity, in percent
# TYPE rhum gauge
rhum {humidity:d}
"""


def render_metrics(reading: Reading) -> str:
    """Format a reading into the exposition template (temperature as %f)."""
    return METRICS_TEMPLATE.format(
        instance_id=reading.instance_id,
        wifi=reading.wifi,
        pm25=reading.pm25,
        co2=reading.co2,
        temperature=reading.temperature,
        humidity=reading.humidity,
    )
