# agencyos/modules/analytics/correlation.py
import math
from typing import List, Sequence, Tuple

from .models import CorrelationAPI, MonthlyAnalytics

# (metric1, metric2, insight)
CORRELATION_PAIRS: Tuple[Tuple[str, str, str], ...] = (
    ("new_clients", "new_projects", "Client acquisition vs. project launches"),
    ("publications", "income", "Content activity vs. income"),
    ("team_size", "active_projects", "Team size vs. active projects"),
    ("new_projects", "income", "New projects vs. revenue"),
)


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson's r of two equal-length series. 0 for empty or mismatched input."""
    n = len(x)
    if n == 0 or n != len(y):
        return 0.0
    sum_x = sum(x)
    sum_y = sum(y)
    sum_xy = sum(xi * yi for xi, yi in zip(x, y))
    sum_x2 = sum(xi * xi for xi in x)
    sum_y2 = sum(yi * yi for yi in y)

    numerator = n * sum_xy - sum_x * sum_y
    radicand = (n * sum_x2 - sum_x * sum_x) * (n * sum_y2 - sum_y * sum_y)
    if radicand < 0:
        return math.nan
    denominator = math.sqrt(radicand)
    return 0.0 if denominator == 0 else numerator / denominator


def calculate_change(current: float, previous: float) -> float:
    """Percent change from `previous`; 100 when growing from zero."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def correlation_strength(value: float) -> str:
    magnitude = abs(value)
    if magnitude > 0.7:
        return "strong"
    if magnitude > 0.4:
        return "medium"
    return "weak"


def get_correlations(rows: Sequence[MonthlyAnalytics]) -> List[CorrelationAPI]:
    if len(rows) < 2:
        return []
    result = []
    for metric1, metric2, insight in CORRELATION_PAIRS:
        value = pearson_correlation(
            [float(getattr(r, metric1)) for r in rows],
            [float(getattr(r, metric2)) for r in rows],
        )
        if math.isnan(value):
            continue
        result.append(CorrelationAPI(
            metric1=metric1,
            metric2=metric2,
            correlation=round(value, 4),
            strength=correlation_strength(value),
            insight=insight,
        ))
    return result
