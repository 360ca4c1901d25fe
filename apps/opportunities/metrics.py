"""
Pipeline analytics

Every function takes an Opportunity queryset so callers decide the scope
(whole pipeline for admins, own deals for sales users).
"""
import datetime
from decimal import Decimal, ROUND_HALF_UP

from dateutil.relativedelta import relativedelta
from django.db.models import Avg, Count, Sum
from django.utils import timezone

from .models import OpportunityStage, TERMINAL_STAGES

MONTH_NAMES = [
    'janvier', 'février', 'mars', 'avril', 'mai', 'juin',
    'juillet', 'août', 'septembre', 'octobre', 'novembre', 'décembre',
]

PERIOD_LABELS = {
    'quarter': 'Trimestre en cours',
    'semester': 'Semestre',
    'year': 'Année en cours',
}


def _round(value, places='0.01'):
    return float(Decimal(value).quantize(Decimal(places), rounding=ROUND_HALF_UP))


def month_label(day):
    return f"{MONTH_NAMES[day.month - 1]} {day.year}"


def conversion_rate(queryset):
    """won / (won + lost) * 100, one decimal; 0 when nothing is closed yet"""
    closed = queryset.filter(stage__in=TERMINAL_STAGES).count()
    if closed == 0:
        return 0
    won = queryset.won().count()
    return round(won / closed * 100, 1)


def stage_breakdown(queryset):
    """Count and total amount per open stage"""
    rows = (
        queryset.open()
        .order_by()
        .values('stage')
        .annotate(count=Count('id'), total=Sum('amount'))
    )
    totals = {row['stage']: row for row in rows}

    breakdown = []
    for stage in OpportunityStage:
        if stage.is_terminal:
            continue
        row = totals.get(stage.value, {})
        breakdown.append({
            'stage': stage.value,
            'stage_label': stage.label,
            'color': stage.color,
            'count': row.get('count', 0),
            'total': float(row.get('total') or 0),
        })
    return breakdown


def monthly_expected(queryset, months=3):
    """Weighted amount of open deals expected to close in each of the next months"""
    today = timezone.localdate()
    forecast = []
    for offset in range(months):
        month = today.replace(day=1) + relativedelta(months=offset)
        in_month = queryset.open().filter(
            expected_close_date__year=month.year,
            expected_close_date__month=month.month,
        )
        forecast.append({
            'month': month.strftime('%Y-%m'),
            'month_label': month_label(month),
            'expected': float(in_month.weighted_total()),
        })
    return forecast


def pipeline_metrics(queryset):
    """Headline figures shown above the opportunity list"""
    today = timezone.localdate()
    open_qs = queryset.open()
    won_qs = queryset.won()

    won_this_month = won_qs.filter(actual_close_date__gte=today.replace(day=1))
    average_deal_size = won_qs.aggregate(avg=Avg('amount'))['avg'] or 0

    return {
        'pipeline_value': float(open_qs.total_amount()),
        'weighted_pipeline': float(open_qs.weighted_total()),
        'opportunities_count': open_qs.count(),
        'won_this_month': float(won_this_month.total_amount()),
        'conversion_rate': conversion_rate(queryset),
        'average_deal_size': _round(average_deal_size),
        'closing_this_month': open_qs.closing_this_month().count(),
        'overdue_opportunities': queryset.overdue().count(),
        'by_stage': stage_breakdown(queryset),
        'forecast': monthly_expected(queryset),
    }


def _forecast_end(period, today):
    if period == 'semester':
        return today + relativedelta(months=6)
    if period == 'year':
        return datetime.date(today.year, 12, 31)
    # current quarter
    quarter_last_month = ((today.month - 1) // 3 + 1) * 3
    return datetime.date(today.year, quarter_last_month, 1) + relativedelta(months=1, days=-1)


def forecast(queryset, period='quarter', factor=0.95):
    """
    Month by month revenue forecast

    Each open deal's probability is scaled by the scenario factor (capped at
    100) and its amount lands in one bucket:
    committed (> 75 %), best case (50-75 %) or pipeline (< 50 %).
    """
    today = timezone.localdate()
    end = _forecast_end(period, today)
    factor = Decimal(str(factor))

    monthly = []
    month = today.replace(day=1)
    while month <= end:
        opportunities = queryset.open().filter(
            expected_close_date__year=month.year,
            expected_close_date__month=month.month,
        )

        committed = best_case = pipeline = weighted = Decimal('0')
        count = 0
        for amount, probability in opportunities.values_list('amount', 'probability'):
            adjusted = min(Decimal(100), Decimal(probability) * factor)
            weighted += amount * adjusted / Decimal(100)
            if adjusted > 75:
                committed += amount
            elif adjusted >= 50:
                best_case += amount
            else:
                pipeline += amount
            count += 1

        monthly.append({
            'month': month.strftime('%Y-%m'),
            'month_label': month_label(month),
            'committed': _round(committed),
            'best_case': _round(best_case),
            'pipeline': _round(pipeline),
            'weighted': _round(weighted),
            'total': _round(committed + best_case + pipeline),
            'opportunities_count': count,
        })
        month += relativedelta(months=1)

    keys = ['committed', 'best_case', 'pipeline', 'weighted', 'total']
    totals = {key: round(sum(row[key] for row in monthly), 2) for key in keys}
    totals['opportunities_count'] = sum(row['opportunities_count'] for row in monthly)

    return {
        'monthly': monthly,
        'totals': totals,
        'period_label': PERIOD_LABELS.get(period, PERIOD_LABELS['quarter']),
    }


def historical_wins(queryset, months=6):
    """Won deals per month over the last months (by actual close date)"""
    start = timezone.localdate().replace(day=1) - relativedelta(months=months)
    wins = queryset.won().filter(actual_close_date__gte=start).values_list('actual_close_date', 'amount')

    buckets = {}
    for closed_on, amount in wins:
        key = closed_on.strftime('%Y-%m')
        bucket = buckets.setdefault(key, {'month': key, 'month_label': month_label(closed_on), 'count': 0, 'total': Decimal('0')})
        bucket['count'] += 1
        bucket['total'] += amount

    history = []
    for key in sorted(buckets):
        bucket = buckets[key]
        history.append({
            'month': bucket['month'],
            'month_label': bucket['month_label'],
            'count': bucket['count'],
            'total': _round(bucket['total']),
            'average': _round(bucket['total'] / bucket['count']),
        })
    return history


def pipeline_analysis(queryset):
    """Value of each open stage, weighted by the stage's usual probability"""
    analysis = []
    for row in stage_breakdown(queryset):
        stage = OpportunityStage(row['stage'])
        analysis.append({
            'stage': stage.value,
            'label': stage.label,
            'probability': stage.default_probability,
            'count': row['count'],
            'total_value': row['total'],
            'weighted_value': round(row['total'] * stage.default_probability / 100, 2),
            'average_value': round(row['total'] / row['count'], 2) if row['count'] else 0,
        })
    return analysis
