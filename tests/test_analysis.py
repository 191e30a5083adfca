"""Tests pour l'analyse des mesures."""
import pytest
from datetime import timedelta

from airquality.analysis import MeasurementAnalyzer, analyze, measurements_to_dataframe
from airquality.models import AnalysisResult, TrendType

from conftest import make_series


class TestStatistics:
    """Tests des statistiques min / max / moyenne."""

    def test_basic_statistics(self, base_time):
        """Moyenne, min et max avec leurs dates."""
        result = analyze(make_series([25.5, 30.7, 15.2, 20.0], start=base_time))

        assert result.avg_value == pytest.approx(22.85, abs=0.01)
        assert result.min_value == 15.2
        assert result.min_date == base_time + timedelta(hours=2)
        assert result.max_value == 30.7
        assert result.max_date == base_time + timedelta(hours=1)

    def test_duplicate_minimum_keeps_first_occurrence(self, base_time):
        """En cas d'égalité, la première mesure dans l'ordre d'entrée l'emporte."""
        series = make_series([20.0, 10.0, 30.0, 10.0, 30.0], start=base_time)
        result = analyze(series)

        assert result.min_date == base_time + timedelta(hours=1)
        assert result.max_date == base_time + timedelta(hours=2)

    def test_first_occurrence_follows_input_order_not_dates(self, base_time):
        """Le départage suit l'ordre d'entrée, même si les dates sont désordonnées."""
        series = list(reversed(make_series([5.0, 9.0, 5.0], start=base_time)))
        result = analyze(series)

        assert result.min_date == base_time + timedelta(hours=2)

    @pytest.mark.parametrize("values", [
        [3.0],
        [1.0, 2.0],
        [12.5, 7.25, 99.0, 0.5, 42.0],
        [-3.0, 4.5, -10.0, 8.0],
    ])
    def test_min_max_bound_every_value(self, values):
        result = analyze(make_series(values))

        assert all(result.min_value <= v <= result.max_value for v in values)

    def test_invalid_measurements_are_ignored(self, base_time):
        """Une mesure invalide (valeur 0.0) ne compte pas."""
        result = analyze(make_series([None, 20.0], start=base_time))

        assert result.min_value == 20.0
        assert result.max_value == 20.0
        assert result.avg_value == 20.0
        assert not result.is_empty

    def test_only_invalid_returns_default(self):
        result = analyze(make_series([None, None, None]))

        assert result == AnalysisResult()
        assert result.trend == TrendType.UNKNOWN
        assert result.is_empty

    def test_empty_returns_default(self):
        result = analyze([])

        assert result == AnalysisResult()
        assert result.min_value == 0.0
        assert result.max_value == 0.0
        assert result.avg_value == 0.0
        assert result.is_empty


class TestTrend:
    """Tests de la classification de tendance."""

    @pytest.mark.parametrize("values, expected", [
        ([10, 15, 20, 25, 30], TrendType.INCREASING),
        ([50, 40, 30, 20, 10], TrendType.DECREASING),
        ([20.0, 20.1, 20.05, 19.95, 20.05], TrendType.STABLE),
        ([10, 40, 15, 35, 5], TrendType.FLUCTUATING),
    ])
    def test_trend_classification(self, values, expected):
        assert analyze(make_series(values)).trend == expected

    def test_single_measurement_is_unknown(self):
        assert analyze(make_series([42.0])).trend == TrendType.UNKNOWN

    def test_single_valid_among_invalid_is_unknown(self):
        assert analyze(make_series([None, 42.0, None])).trend == TrendType.UNKNOWN

    def test_trend_uses_dates_not_input_order(self):
        """La série est triée par date avant la régression."""
        series = list(reversed(make_series([10, 15, 20, 25, 30])))

        assert analyze(series).trend == TrendType.INCREASING

    def test_fractional_hours(self, base_time):
        """Intervalles de 15 minutes : la pente est exprimée par heure."""
        series = make_series([10, 12, 14, 16], start=base_time, step=timedelta(minutes=15))

        assert analyze(series).trend == TrendType.INCREASING

    def test_same_timestamp_is_stable(self, base_time):
        """Toutes les mesures à la même date : pente nulle."""
        series = make_series([20.0, 20.5, 19.8], start=base_time, step=timedelta(0))

        assert analyze(series).trend == TrendType.STABLE

    def test_zero_mean_is_never_fluctuating(self):
        """Moyenne nulle : l'écart relatif n'est pas défini, la pente seule décide."""
        assert analyze(make_series([-5.0, 5.0, -5.0, 5.0])).trend == TrendType.INCREASING
        assert analyze(make_series([0.0, 0.0, 0.0])).trend == TrendType.STABLE

    def test_fluctuation_overrides_slope(self):
        """Une forte dispersion autour d'une pente nette reste Fluctuating."""
        series = make_series([10, 60, 20, 70, 30, 80])

        assert analyze(series).trend == TrendType.FLUCTUATING

    @pytest.mark.parametrize("values, expected", [
        ([1000, 1002, 1004, 1006, 1008], TrendType.STABLE),
        ([1000, 1003, 1006, 1009, 1012], TrendType.INCREASING),
    ])
    def test_drift_below_one_percent_of_mean_is_stable(self, values, expected):
        """Une dérive totale inférieure à 1 % de la moyenne est Stable, même avec une pente de 2 par heure."""
        assert analyze(make_series(values)).trend == expected

    def test_trend_description(self):
        assert TrendType.INCREASING.description == "Croissante"
        assert TrendType.UNKNOWN.description == "Inconnue"


class TestMeasurementAnalyzer:
    """Tests de la classe MeasurementAnalyzer."""

    def test_dataframe_conversion(self, sample_measurements):
        df = measurements_to_dataframe(sample_measurements)

        assert list(df.columns) == ["sensor_id", "param_code", "date", "value", "valid"]
        assert len(df) == 4
        assert df["valid"].sum() == 3

    def test_dataframe_conversion_empty(self):
        df = measurements_to_dataframe([])

        assert df.empty

    def test_analyze_does_not_modify_input(self, sample_measurements):
        snapshot = list(sample_measurements)
        MeasurementAnalyzer(sample_measurements).analyze()

        assert sample_measurements == snapshot

    def test_generate_report(self, sample_measurements, tmp_path):
        analyzer = MeasurementAnalyzer(sample_measurements)
        path = analyzer.generate_report("sensor_644", reports_dir=tmp_path)

        content = path.read_text(encoding="utf-8")
        assert path.parent == tmp_path
        assert path.name.startswith("sensor_644_")
        assert "| Minimum | 15.20 |" in content
        assert "| Maximum | 30.70 |" in content
        assert "PM10" in content
        assert "3 / 4" in content
