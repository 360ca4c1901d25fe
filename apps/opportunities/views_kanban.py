"""
Kanban board of the sales pipeline

One column per stage; dragging a card to another column goes through
Opportunity.apply_changes so the move is audited like any other update.
Sales users only see their own cards, admins see everyone's and can filter
by owner.
"""
import logging

from django.contrib.auth import get_user_model
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import api_login_required
from apps.core.utils import parse_json_body, validation_error_response
from . import metrics
from .forms import StageMoveForm
from .models import Opportunity, OpportunityStage

logger = logging.getLogger(__name__)

User = get_user_model()


def _card(opportunity):
    return {
        'id': opportunity.id,
        'name': opportunity.name,
        'amount': float(opportunity.amount),
        'probability': opportunity.probability,
        'weighted_amount': float(opportunity.weighted_amount),
        'stage': opportunity.stage,
        'expected_close_date': opportunity.expected_close_date.isoformat() if opportunity.expected_close_date else None,
        'is_overdue': opportunity.is_overdue,
        'contact': {
            'id': opportunity.contact.id,
            'name': opportunity.contact.name,
            'email': opportunity.contact.email,
        },
        'company': {'id': opportunity.company.id, 'name': opportunity.company.name} if opportunity.company else None,
        'user': opportunity.user.to_summary() if opportunity.user else None,
    }


@api_login_required
@require_http_methods(['GET'])
def kanban_board_view(request):
    opportunities = (
        Opportunity.objects.visible_to(request.user)
        .select_related('contact', 'company', 'user')
        .order_by('expected_close_date', 'id')
    )

    user_id = request.GET.get('user_id')
    if user_id and user_id != 'all' and request.user.is_admin():
        opportunities = opportunities.filter(user_id=user_id)

    columns = {stage.value: [] for stage in OpportunityStage}
    for opportunity in opportunities:
        columns.setdefault(opportunity.stage, []).append(_card(opportunity))

    board = []
    for stage in OpportunityStage:
        cards = columns[stage.value]
        board.append({
            'stage': stage.value,
            'label': stage.label,
            'color': stage.color,
            'count': len(cards),
            'total': round(sum(card['amount'] for card in cards), 2),
            'opportunities': cards,
        })

    # Owner filter is only offered to admins
    users = []
    if request.user.is_admin():
        users = [
            {'id': user.id, 'name': user.get_full_name()}
            for user in User.objects.filter(is_active=True).order_by('first_name', 'last_name')
        ]

    return JsonResponse({
        'columns': board,
        'stages': OpportunityStage.options(),
        'users': users,
    })


@api_login_required
@require_http_methods(['PATCH', 'POST'])
def kanban_move_view(request, pk):
    opportunity = get_object_or_404(
        Opportunity.objects.visible_to(request.user).select_related('contact', 'company', 'user'),
        pk=pk,
    )

    form = StageMoveForm(parse_json_body(request))
    if not form.is_valid():
        return validation_error_response(form)

    changes = {'stage': form.cleaned_data['stage']}
    if form.cleaned_data.get('probability') is not None:
        changes['probability'] = form.cleaned_data['probability']

    old_stage = opportunity.stage
    opportunity.apply_changes(changes, actor=request.user)

    logger.info(f"Kanban: opportunity {opportunity.id} moved {old_stage} -> {opportunity.stage} by {request.user.email}")

    return JsonResponse({
        'success': True,
        'message': 'Étape mise à jour',
        'opportunity': _card(opportunity),
    })


@api_login_required
@require_http_methods(['GET'])
def kanban_stats_view(request):
    opportunities = Opportunity.objects.visible_to(request.user)

    stages = []
    for stage in OpportunityStage:
        in_stage = opportunities.filter(stage=stage)
        stages.append({
            'stage': stage.value,
            'label': stage.label,
            'color': stage.color,
            'count': in_stage.count(),
            'total': float(in_stage.total_amount()),
            'weighted': float(in_stage.weighted_total()),
        })

    return JsonResponse({
        'stages': stages,
        'total_count': opportunities.count(),
        'pipeline_value': float(opportunities.open().total_amount()),
        'weighted_pipeline': float(opportunities.open().weighted_total()),
        'conversion_rate': metrics.conversion_rate(opportunities),
    })
