from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import api_login_required
from apps.core.utils import validation_error_response
from . import metrics
from .forms import ForecastForm
from .models import Opportunity


@api_login_required
@require_http_methods(['GET'])
def forecast_view(request):
    """
    Revenue forecast for the current period

    Query params:
        period: quarter (default) | semester | year
        scenario: pessimistic | realistic (default) | optimistic
    """
    form = ForecastForm(request.GET)
    if not form.is_valid():
        return validation_error_response(form)

    period = form.cleaned_data['period']
    scenario = form.cleaned_data['scenario']
    opportunities = Opportunity.objects.visible_to(request.user)

    return JsonResponse({
        'period': period,
        'scenario': scenario,
        'scenario_factor': ForecastForm.SCENARIO_FACTORS[scenario],
        'forecast': metrics.forecast(
            opportunities,
            period=period,
            factor=ForecastForm.SCENARIO_FACTORS[scenario],
        ),
        'historical': metrics.historical_wins(opportunities),
        'pipeline_analysis': metrics.pipeline_analysis(opportunities),
    })
