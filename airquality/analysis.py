"""Module d'analyse des séries de mesures et rapport."""
import pandas as pd
from datetime import datetime
from pathlib import Path
from typing import Iterable
import logging

from .config import ANALYSIS_THRESHOLDS, REPORTS_DIR
from .models import AnalysisResult, Measurement, TrendType

logger = logging.getLogger(__name__)

MEASUREMENT_COLUMNS = ["sensor_id", "param_code", "date", "value", "valid"]


def measurements_to_dataframe(measurements: Iterable[Measurement]) -> pd.DataFrame:
    """Convertit des mesures en DataFrame, dans l'ordre d'entrée."""
    df = pd.DataFrame(
        [
            {
                "sensor_id": m.sensor_id,
                "param_code": m.param_code,
                "date": m.date,
                "value": m.value,
                "valid": m.valid,
            }
            for m in measurements
        ],
        columns=MEASUREMENT_COLUMNS,
    )
    df["date"] = pd.to_datetime(df["date"])
    df["value"] = df["value"].astype(float)
    df["valid"] = df["valid"].astype(bool)
    return df


class MeasurementAnalyzer:
    """Calcule minimum, maximum, moyenne et tendance d'une série de mesures."""

    def __init__(self, measurements: Iterable[Measurement]):
        self.df = measurements_to_dataframe(measurements)
        # Les mesures invalides n'ont pas de valeur exploitable
        self.valid = self.df[self.df["valid"]]
        self.result = None

    def calculate_extremes(self) -> tuple[float, datetime, float, datetime]:
        """Minimum et maximum, à la première occurrence dans l'ordre d'entrée."""
        values = self.valid["value"]
        min_idx, max_idx = values.idxmin(), values.idxmax()
        return (
            float(values[min_idx]),
            self.valid.at[min_idx, "date"].to_pydatetime(),
            float(values[max_idx]),
            self.valid.at[max_idx, "date"].to_pydatetime(),
        )

    def calculate_average(self) -> float:
        return float(self.valid["value"].mean())

    @staticmethod
    def calculate_regression(hours: pd.Series, values: pd.Series) -> tuple[float, float]:
        """
        Régression linéaire des moindres carrés : (pente, ordonnée à l'origine).

        Si toutes les mesures ont la même date, la pente est nulle.
        """
        n = len(hours)
        sum_x = float(hours.sum())
        sum_y = float(values.sum())
        sum_xy = float((hours * values).sum())
        sum_x2 = float((hours * hours).sum())

        denominator = n * sum_x2 - sum_x * sum_x
        slope = (n * sum_xy - sum_x * sum_y) / denominator if denominator != 0 else 0.0
        intercept = (sum_y - slope * sum_x) / n
        return slope, intercept

    def classify_trend(self) -> TrendType:
        """
        Classe la tendance de la série.

        La pente (unités par heure) donne Stable / Increasing / Decreasing ;
        un écart moyen à la droite de tendance supérieur à 20 % de la moyenne
        donne Fluctuating, quelle que soit la pente. Avec une moyenne nulle,
        les rapports ne sont pas définis : la série n'est jamais considérée
        comme fluctuante et seule la pente absolue compte.
        """
        if len(self.valid) < 2:
            return TrendType.UNKNOWN

        ordered = self.valid.sort_values("date", kind="stable")
        hours = (ordered["date"] - ordered["date"].iloc[0]).dt.total_seconds() / 3600.0
        values = ordered["value"]

        slope, intercept = self.calculate_regression(hours, values)
        mean = float(values.mean())
        span = float(hours.iloc[-1])

        if abs(slope) < ANALYSIS_THRESHOLDS["stable_slope"]:
            trend = TrendType.STABLE
        elif mean != 0 and abs(slope * span) / abs(mean) < ANALYSIS_THRESHOLDS["stable_drift_ratio"]:
            trend = TrendType.STABLE
        elif slope > 0:
            trend = TrendType.INCREASING
        else:
            trend = TrendType.DECREASING

        if mean != 0:
            residuals = values - (intercept + slope * hours)
            relative_deviation = float(residuals.abs().mean()) / abs(mean)
            if relative_deviation > ANALYSIS_THRESHOLDS["fluctuation_ratio"]:
                trend = TrendType.FLUCTUATING

        return trend

    def analyze(self) -> AnalysisResult:
        """Effectue l'analyse complète. Sans mesure valide, retourne le résultat par défaut."""
        if self.valid.empty:
            self.result = AnalysisResult()
            return self.result

        min_value, min_date, max_value, max_date = self.calculate_extremes()

        self.result = AnalysisResult(
            min_value=min_value,
            min_date=min_date,
            max_value=max_value,
            max_date=max_date,
            avg_value=self.calculate_average(),
            trend=self.classify_trend(),
        )
        return self.result

    def generate_report(self, output_name: str = "analysis_report", reports_dir: Path = REPORTS_DIR) -> Path:
        """Génère un rapport d'analyse en Markdown."""
        if self.result is None:
            self.analyze()

        r = self.result
        fmt_date = lambda d: d.strftime('%Y-%m-%d %H:%M') if d else "-"
        param_codes = ", ".join(sorted(self.df["param_code"].dropna().unique())) or "-"

        report = f"""# Rapport d'Analyse des Mesures

**Généré le** : {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}
**Paramètre(s)** : {param_codes}

## 📊 Statistiques

| Métrique | Valeur | Date |
|----------|--------|------|
| Minimum | {r.min_value:.2f} | {fmt_date(r.min_date)} |
| Maximum | {r.max_value:.2f} | {fmt_date(r.max_date)} |
| Moyenne | {r.avg_value:.2f} | - |
| Mesures valides | {len(self.valid)} / {len(self.df)} | - |

## 📈 Tendance

**{r.trend.description}** ({r.trend.value})

---
*Rapport généré automatiquement par le client qualité de l'air*
"""

        reports_dir = Path(reports_dir)
        reports_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = reports_dir / f"{output_name}_{timestamp}.md"
        filepath.write_text(report, encoding='utf-8')

        logger.info(f"📄 Rapport sauvegardé : {filepath}")
        return filepath


def analyze(measurements: Iterable[Measurement]) -> AnalysisResult:
    """Analyse une série de mesures (fonction pure)."""
    return MeasurementAnalyzer(measurements).analyze()
