"""Fixtures partagées."""
import pytest
from datetime import datetime, timedelta
from unittest.mock import MagicMock

from airquality.models import Measurement, Sensor, Station


def make_series(values, start=datetime(2025, 3, 10, 8, 0), step=timedelta(hours=1), sensor_id=1):
    """Série de mesures valides à intervalle régulier. `None` donne une mesure invalide."""
    return [
        Measurement(
            sensor_id=sensor_id,
            param_code="PM10",
            date=start + i * step,
            value=0.0 if value is None else value,
            valid=value is not None,
        )
        for i, value in enumerate(values)
    ]


def make_response(payload):
    """Réponse HTTP simulée retournant `payload` en JSON."""
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


@pytest.fixture
def base_time():
    return datetime(2025, 3, 10, 8, 0)


@pytest.fixture
def sample_stations():
    return [
        Station(id=114, name="Wrocław - Bartnicza", latitude=51.115933, longitude=17.141125,
                city="Wrocław", address="ul. Bartnicza", commune="Wrocław",
                district="Wrocław", province="DOLNOŚLĄSKIE"),
        Station(id=400, name="Kraków, Aleja Krasińskiego", latitude=50.057678, longitude=19.926189,
                city="Kraków", address="al. Krasińskiego", commune="Kraków",
                district="Kraków", province="MAŁOPOLSKIE"),
        Station(id=530, name="Warszawa-Marszałkowska", latitude=52.225, longitude=21.0,
                city="Warszawa", address="ul. Marszałkowska", commune="Warszawa",
                district="Warszawa", province="MAZOWIECKIE"),
    ]


@pytest.fixture
def sample_sensors():
    return [
        Sensor(id=642, station_id=114, param_name="dwutlenek azotu", param_formula="NO2",
               param_code="NO2", param_id=6),
        Sensor(id=644, station_id=114, param_name="pył zawieszony PM10", param_formula="PM10",
               param_code="PM10", param_id=3),
        Sensor(id=2750, station_id=400, param_name="benzen", param_formula="C6H6",
               param_code="C6H6", param_id=10),
    ]


@pytest.fixture
def sample_measurements(base_time):
    return make_series([25.5, None, 30.7, 15.2], start=base_time, sensor_id=644)
