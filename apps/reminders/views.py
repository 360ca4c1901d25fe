import logging

from django.core.exceptions import PermissionDenied
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods, require_POST

from apps.accounts.decorators import api_login_required
from apps.core.utils import clamp_int, parse_json_body, validation_error_response
from .forms import ReminderForm, ReminderUpdateForm, SnoozeForm
from .models import Reminder

logger = logging.getLogger(__name__)


def _own_reminder(request, pk):
    reminder = get_object_or_404(Reminder.objects.select_related('opportunity', 'contact'), pk=pk)
    if not request.user.can_manage(reminder.user_id):
        raise PermissionDenied('You do not have permission to modify this reminder.')
    return reminder


@api_login_required
@require_http_methods(['GET', 'POST'])
def reminder_collection_view(request):
    """
    GET: the user's reminders grouped as overdue / today / upcoming / completed
    POST: create a reminder for the request user
    """
    if request.method == 'POST':
        form = ReminderForm(parse_json_body(request))
        if not form.is_valid():
            return validation_error_response(form)

        reminder = form.save(commit=False)
        reminder.user = request.user
        reminder.status = Reminder.STATUS_PENDING
        reminder.save()

        logger.info(f"Reminder created: {reminder.id} for {request.user.email}")
        return JsonResponse({
            'message': 'Rappel créé avec succès',
            'reminder': reminder.to_dict(),
        }, status=201)

    reminders = (
        Reminder.objects.for_user(request.user)
        .select_related('opportunity', 'contact')
        .order_by('reminder_date')
    )

    grouped = {'overdue': [], 'today': [], 'upcoming': [], 'completed': []}
    pending_total = 0
    for reminder in reminders:
        data = reminder.to_dict()
        if reminder.status == Reminder.STATUS_COMPLETED:
            grouped['completed'].append(data)
            continue
        if reminder.status != Reminder.STATUS_PENDING:
            continue

        pending_total += 1
        if data['is_overdue']:
            grouped['overdue'].append(data)
        if data['is_due_today']:
            grouped['today'].append(data)
        if not data['is_overdue'] and not data['is_due_today']:
            grouped['upcoming'].append(data)

    return JsonResponse({
        'reminders': grouped,
        'types': dict(Reminder.TYPE_CHOICES),
        'priorities': dict(Reminder.PRIORITY_CHOICES),
        'stats': {
            'overdue': len(grouped['overdue']),
            'today': len(grouped['today']),
            'upcoming': len(grouped['upcoming']),
            'total': pending_total,
        },
    })


@api_login_required
@require_http_methods(['GET', 'PUT', 'PATCH', 'DELETE'])
def reminder_detail_view(request, pk):
    reminder = _own_reminder(request, pk)

    if request.method == 'GET':
        return JsonResponse({'reminder': reminder.to_dict()})

    if request.method == 'DELETE':
        reminder.delete()
        logger.info(f"Reminder deleted: {pk} by {request.user.email}")
        return JsonResponse({'message': 'Rappel supprimé'})

    form = ReminderUpdateForm(parse_json_body(request), instance=reminder)
    if not form.is_valid():
        return validation_error_response(form)

    reminder = form.save()
    return JsonResponse({
        'message': 'Rappel mis à jour',
        'reminder': reminder.to_dict(),
    })


@api_login_required
@require_POST
def reminder_complete_view(request, pk):
    reminder = _own_reminder(request, pk)
    if reminder.status == Reminder.STATUS_COMPLETED:
        return JsonResponse({
            'success': False,
            'error': 'Ce rappel est déjà complété',
        }, status=409)

    successor = reminder.mark_completed()

    if successor:
        logger.info(f"Reminder {reminder.id} completed, next occurrence {successor.id} on {successor.reminder_date:%Y-%m-%d %H:%M}")

    return JsonResponse({
        'message': 'Rappel marqué comme complété',
        'reminder': reminder.to_dict(),
        'next_reminder': successor.to_dict() if successor else None,
    })


@api_login_required
@require_POST
def reminder_snooze_view(request, pk):
    reminder = _own_reminder(request, pk)

    form = SnoozeForm(parse_json_body(request))
    if not form.is_valid():
        return validation_error_response(form)

    reminder.snooze(form.cleaned_data['minutes'])

    return JsonResponse({
        'message': 'Rappel reporté',
        'reminder': reminder.to_dict(),
    })


@api_login_required
@require_http_methods(['GET'])
def reminder_upcoming_view(request):
    """Next pending reminders (late ones included), for the header dropdown"""
    limit = clamp_int(request.GET.get('limit'), 10, 1, 50)
    reminders = (
        Reminder.objects.for_user(request.user)
        .pending()
        .select_related('opportunity', 'contact')
        .order_by('reminder_date')[:limit]
    )

    return JsonResponse({
        'reminders': [
            {
                'id': reminder.id,
                'title': reminder.title,
                'reminder_date': reminder.reminder_date.isoformat(),
                'type': reminder.type,
                'priority': reminder.priority,
                'is_overdue': reminder.is_overdue(),
                'is_due_today': reminder.is_due_today(),
                'opportunity_name': reminder.opportunity.name if reminder.opportunity else None,
                'contact_name': reminder.contact.name if reminder.contact else None,
            }
            for reminder in reminders
        ],
    })


@api_login_required
@require_http_methods(['GET'])
def reminder_count_view(request):
    reminders = Reminder.objects.for_user(request.user)
    return JsonResponse({
        'overdue': reminders.overdue().count(),
        'today': reminders.today().count(),
        'upcoming': reminders.upcoming(days=3).count(),
    })
