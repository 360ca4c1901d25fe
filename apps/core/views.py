import datetime

from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import api_login_required
from apps.contacts.models import Company, Contact
from apps.documents.models import Document
from apps.opportunities import metrics
from apps.opportunities.models import Opportunity, OpportunityActivity
from apps.reminders.models import Reminder
from .utils import clamp_int

# Icon / color of each activity type in the dashboard feed
ACTIVITY_STYLES = {
    OpportunityActivity.TYPE_STAGE_CHANGE: ('git-branch', 'orange'),
    OpportunityActivity.TYPE_AMOUNT_CHANGE: ('euro', 'orange'),
    OpportunityActivity.TYPE_CALL: ('phone', 'blue'),
    OpportunityActivity.TYPE_EMAIL: ('mail', 'blue'),
    OpportunityActivity.TYPE_MEETING: ('users', 'purple'),
    OpportunityActivity.TYPE_TASK: ('check-square', 'green'),
}


def _this_month(queryset, field='created_at'):
    today = timezone.localdate()
    return queryset.filter(**{f'{field}__year': today.year, f'{field}__month': today.month})


@api_login_required
@require_http_methods(['GET'])
def dashboard_stats_view(request):
    """Headline numbers of the user's own book of business"""
    user = request.user

    contacts = Contact.objects.filter(user=user)
    companies = Company.objects.filter(owner=user)
    opportunities = Opportunity.objects.filter(user=user)
    open_opportunities = opportunities.open()

    won_this_month = _this_month(opportunities.won(), 'actual_close_date').total_amount()

    return JsonResponse({
        'data': {
            'total_contacts': contacts.count(),
            'total_companies': companies.count(),
            'total_documents': Document.objects.filter(owner=user).count(),
            'contacts_this_month': _this_month(contacts).count(),
            'companies_this_month': _this_month(companies).count(),
            'total_opportunities': opportunities.count(),
            'open_opportunities': open_opportunities.count(),
            'pipeline_value': float(open_opportunities.total_amount()),
            'weighted_pipeline': float(open_opportunities.weighted_total()),
            'won_this_month': float(won_this_month),
            'opportunities_this_month': _this_month(opportunities).count(),
        },
    })


@api_login_required
@require_http_methods(['GET'])
def opportunities_by_stage_view(request):
    breakdown = metrics.stage_breakdown(Opportunity.objects.filter(user=request.user))
    return JsonResponse({
        'data': [
            {
                'name': row['stage_label'],
                'stage': row['stage'],
                'color': row['color'],
                'count': row['count'],
                'amount': row['total'],
            }
            for row in breakdown
        ],
    })


@api_login_required
@require_http_methods(['GET'])
def recent_activities_view(request):
    """
    Latest activity on the user's opportunities merged with reminders due
    within 7 days, newest first

    ?limit= (default 15, max 50)
    """
    limit = clamp_int(request.GET.get('limit'), 15, 1, 50)

    activities = (
        OpportunityActivity.objects
        .filter(opportunity__user=request.user)
        .select_related('opportunity', 'user')
        .order_by('-created_at', '-id')[:limit]
    )

    feed = []
    for activity in activities:
        icon, color = ACTIVITY_STYLES.get(activity.type, ('activity', 'gray'))
        feed.append({
            'type': 'opportunity',
            'title': activity.title,
            'description': f"{activity.opportunity.name} - Par {activity.user.get_full_name()}" if activity.user else activity.opportunity.name,
            'date': activity.created_at,
            'id': activity.id,
            'subject_id': activity.opportunity_id,
            'subject_type': 'opportunity',
            'icon': icon,
            'color': color,
        })

    horizon = timezone.now() + datetime.timedelta(days=7)
    reminders = (
        Reminder.objects.for_user(request.user)
        .pending()
        .filter(reminder_date__lte=horizon)
        .order_by('reminder_date')[:5]
    )
    for reminder in reminders:
        overdue = reminder.is_overdue()
        feed.append({
            'type': 'reminder',
            'title': f"Rappel: {reminder.title}",
            'description': 'En retard!' if overdue else 'À venir',
            'date': reminder.reminder_date,
            'id': reminder.id,
            'subject_id': reminder.id,
            'subject_type': 'reminder',
            'icon': 'bell',
            'color': 'red' if overdue else 'yellow',
        })

    feed.sort(key=lambda item: item['date'], reverse=True)
    for item in feed:
        item['date'] = item['date'].isoformat()

    return JsonResponse({'data': feed[:limit]})
