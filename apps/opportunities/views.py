import csv
import logging

import openpyxl
from openpyxl.styles import Font, PatternFill
from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.db.models import Q
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_http_methods, require_POST

from apps.accounts.decorators import api_login_required
from apps.core.utils import (
    form_errors,
    paginate,
    parse_json_body,
    validation_error_response,
)
from . import metrics
from .forms import ExportForm, OpportunityActivityForm, OpportunityForm, TimelineNoteForm, clean_products
from .models import Opportunity, OpportunityActivity, OpportunityStage

logger = logging.getLogger(__name__)


def _editable_opportunity(request, pk):
    """Owner or admin only; 404 when missing, 403 otherwise"""
    opportunity = get_object_or_404(Opportunity.objects.select_related('contact', 'company', 'user'), pk=pk)
    if not request.user.can_manage(opportunity.user_id):
        raise PermissionDenied('You do not have permission to modify this opportunity.')
    return opportunity


def _validate_opportunity_payload(data):
    """
    Returns:
        tuple: (form, products, errors)
    """
    form = OpportunityForm(data)
    products, product_errors = clean_products(data.get('products'))

    errors = {}
    if not form.is_valid():
        errors.update(form_errors(form))
    errors.update(product_errors)

    return form, products, errors


@api_login_required
@require_http_methods(['GET', 'POST'])
def opportunity_collection_view(request):
    if request.method == 'POST':
        return _opportunity_create(request)

    opportunities = Opportunity.objects.select_related('contact', 'company', 'user')

    stage = request.GET.get('stage')
    if stage:
        opportunities = opportunities.filter(stage=stage)

    user_id = request.GET.get('user_id')
    if user_id:
        opportunities = opportunities.filter(user_id=user_id)

    company_id = request.GET.get('company_id')
    if company_id:
        opportunities = opportunities.filter(company_id=company_id)

    search_query = request.GET.get('search', '').strip()
    if search_query:
        opportunities = opportunities.filter(
            Q(name__icontains=search_query) |
            Q(description__icontains=search_query) |
            Q(contact__name__icontains=search_query) |
            Q(company__name__icontains=search_query)
        )

    page_obj, meta = paginate(opportunities.order_by('-created_at'), request)

    return JsonResponse({
        'opportunities': [opportunity.to_dict() for opportunity in page_obj],
        'pagination': meta,
        'metrics': metrics.pipeline_metrics(Opportunity.objects.visible_to(request.user)),
        'stages': OpportunityStage.options(),
        'filters': {
            'stage': stage,
            'user_id': user_id,
            'company_id': company_id,
            'search': search_query,
        },
    })


def _opportunity_create(request):
    data = parse_json_body(request)
    form, products, errors = _validate_opportunity_payload(data)
    if errors:
        return JsonResponse({'message': 'The given data was invalid.', 'errors': errors}, status=422)

    with transaction.atomic():
        opportunity = Opportunity.objects.create(user=request.user, **form.to_model_fields())
        if products:
            opportunity.replace_products(products)
        opportunity.log_activity(
            OpportunityActivity.TYPE_NOTE,
            'Opportunité créée',
            actor=request.user,
            description="L'opportunité a été créée",
        )

    logger.info(f"Opportunity created: {opportunity.id} - {opportunity.name} by {request.user.email}")

    return JsonResponse({
        'message': 'Opportunité créée avec succès',
        'opportunity': opportunity.to_dict(detail=True),
        'id': opportunity.id,
    }, status=201)


@api_login_required
@require_http_methods(['GET', 'PUT', 'DELETE'])
def opportunity_detail_view(request, pk):
    if request.method == 'PUT':
        return _opportunity_update(request, pk)
    if request.method == 'DELETE':
        return _opportunity_delete(request, pk)

    opportunity = get_object_or_404(
        Opportunity.objects.select_related('contact', 'company', 'user'),
        pk=pk,
    )
    return JsonResponse({
        'opportunity': opportunity.to_dict(detail=True),
        'stages': OpportunityStage.options(),
    })


def _opportunity_update(request, pk):
    opportunity = _editable_opportunity(request, pk)

    data = parse_json_body(request)
    form, products, errors = _validate_opportunity_payload(data)
    if errors:
        return JsonResponse({'message': 'The given data was invalid.', 'errors': errors}, status=422)

    with transaction.atomic():
        activities = opportunity.apply_changes(form.to_model_fields(), actor=request.user)
        if products is not None:
            opportunity.replace_products(products)

    logger.info(
        f"Opportunity updated: {opportunity.id} by {request.user.email} "
        f"({len(activities)} trail entr{'y' if len(activities) == 1 else 'ies'})"
    )

    return JsonResponse({
        'message': 'Opportunité mise à jour avec succès',
        'opportunity': opportunity.to_dict(detail=True),
    })


def _opportunity_delete(request, pk):
    opportunity = _editable_opportunity(request, pk)
    opportunity_id = opportunity.id
    opportunity.delete()

    logger.info(f"Opportunity deleted: {opportunity_id} by {request.user.email}")

    return JsonResponse({'message': 'Opportunité supprimée avec succès'})


@api_login_required
@require_http_methods(['GET'])
def opportunity_metrics_view(request):
    opportunities = Opportunity.objects.visible_to(request.user)
    return JsonResponse({'metrics': metrics.pipeline_metrics(opportunities)})


@api_login_required
@require_POST
def opportunity_activity_create_view(request, pk):
    opportunity = get_object_or_404(Opportunity, pk=pk)

    form = OpportunityActivityForm(parse_json_body(request))
    if not form.is_valid():
        return validation_error_response(form)

    activity = opportunity.log_activity(
        form.cleaned_data['type'],
        form.cleaned_data['title'],
        actor=request.user,
        description=form.cleaned_data['description'],
        scheduled_at=form.cleaned_data['scheduled_at'],
    )

    return JsonResponse({
        'message': 'Activité ajoutée avec succès',
        'activity': activity.to_dict(),
    }, status=201)


@api_login_required
@require_POST
def activity_complete_view(request, pk):
    activity = get_object_or_404(OpportunityActivity.objects.select_related('user'), pk=pk)
    activity.mark_completed()

    return JsonResponse({
        'message': 'Activité marquée comme terminée',
        'activity': activity.to_dict(),
    })


@api_login_required
@require_POST
def opportunity_duplicate_view(request, pk):
    opportunity = get_object_or_404(Opportunity, pk=pk)
    copy = opportunity.duplicate(actor=request.user)

    logger.info(f"Opportunity {opportunity.id} duplicated as {copy.id} by {request.user.email}")

    return JsonResponse({
        'message': 'Opportunité dupliquée avec succès',
        'opportunity': copy.to_dict(detail=True),
        'id': copy.id,
    }, status=201)


def _timeline_group(day, today):
    if day == today:
        return "Aujourd'hui"
    if day == today - timezone.timedelta(days=1):
        return 'Hier'
    return day.strftime('%d/%m/%Y')


@api_login_required
@require_http_methods(['GET'])
def opportunity_timeline_view(request, pk):
    """Activity trail grouped by day, newest first"""
    opportunity = get_object_or_404(Opportunity, pk=pk)
    activities = opportunity.activities.select_related('user').order_by('-created_at', '-id')

    today = timezone.localdate()
    groups = []
    for activity in activities:
        label = _timeline_group(timezone.localdate(activity.created_at), today)
        if not groups or groups[-1]['date'] != label:
            groups.append({'date': label, 'items': []})
        groups[-1]['items'].append(activity.to_dict())

    return JsonResponse({
        'opportunity': {'id': opportunity.id, 'name': opportunity.name},
        'timeline': groups,
        'total': activities.count(),
    })


@api_login_required
@require_POST
def opportunity_timeline_note_view(request, pk):
    opportunity = get_object_or_404(Opportunity, pk=pk)

    form = TimelineNoteForm(parse_json_body(request))
    if not form.is_valid():
        return validation_error_response(form)

    activity = opportunity.log_activity(
        OpportunityActivity.TYPE_NOTE,
        'Note ajoutée',
        actor=request.user,
        description=form.cleaned_data['content'],
    )

    return JsonResponse({
        'message': 'Note ajoutée avec succès',
        'activity': activity.to_dict(),
    }, status=201)


EXPORT_HEADERS = [
    'ID', 'Nom', 'Étape', 'Montant', 'Devise', 'Probabilité',
    'Montant pondéré', 'Date de clôture prévue', 'Date de clôture réelle',
    'Contact', 'Entreprise', 'Email contact', 'Téléphone contact',
    'Responsable', 'Source', 'Description', 'Créé le', 'Mis à jour le',
]


def _export_row(opportunity):
    return [
        opportunity.id,
        opportunity.name,
        opportunity.stage_label,
        float(opportunity.amount),
        opportunity.currency,
        opportunity.probability,
        float(opportunity.weighted_amount),
        opportunity.expected_close_date.strftime('%Y-%m-%d') if opportunity.expected_close_date else '',
        opportunity.actual_close_date.strftime('%Y-%m-%d') if opportunity.actual_close_date else '',
        opportunity.contact.name,
        opportunity.company.name if opportunity.company else '',
        opportunity.contact.email or '',
        opportunity.contact.phone,
        opportunity.user.get_full_name() if opportunity.user else '',
        opportunity.lead_source,
        opportunity.description,
        timezone.localtime(opportunity.created_at).strftime('%Y-%m-%d %H:%M'),
        timezone.localtime(opportunity.updated_at).strftime('%Y-%m-%d %H:%M'),
    ]


@api_login_required
@require_http_methods(['GET'])
def opportunity_export_view(request):
    form = ExportForm(request.GET)
    if not form.is_valid():
        return validation_error_response(form)

    opportunities = Opportunity.objects.visible_to(request.user).select_related('contact', 'company', 'user')

    stage = form.cleaned_data.get('stage')
    if stage:
        opportunities = opportunities.filter(stage=stage)

    user_id = request.GET.get('user_id')
    if user_id and user_id != 'all':
        opportunities = opportunities.filter(user_id=user_id)

    timestamp = timezone.localtime().strftime('%Y%m%d_%H%M%S')

    if form.cleaned_data['format'] == 'excel':
        # Create workbook
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Opportunités"

        # Write headers with styling
        for col, header in enumerate(EXPORT_HEADERS, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = Font(bold=True, color="FFFFFF")
            cell.fill = PatternFill(start_color="667eea", end_color="667eea", fill_type="solid")

        for row, opportunity in enumerate(opportunities, start=2):
            for col, value in enumerate(_export_row(opportunity), start=1):
                ws.cell(row=row, column=col, value=value)

        # Adjust column widths
        for col in ws.columns:
            max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in col)
            ws.column_dimensions[col[0].column_letter].width = min(max_length + 2, 50)

        response = HttpResponse(
            content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        )
        response['Content-Disposition'] = f'attachment; filename="opportunities_{timestamp}.xlsx"'
        wb.save(response)

        logger.info(f"Opportunities exported to Excel by {request.user.email}")
        return response

    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="opportunities_{timestamp}.csv"'

    # Write BOM for Excel UTF-8 compatibility
    response.write('\ufeff')

    writer = csv.writer(response, delimiter=';')
    writer.writerow(EXPORT_HEADERS)
    for opportunity in opportunities:
        writer.writerow(_export_row(opportunity))

    logger.info(f"Opportunities exported to CSV by {request.user.email}")
    return response
