import logging
import smtplib

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.core.mail import EmailMultiAlternatives
from django.db import transaction
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils.html import strip_tags
from django.views.decorators.http import require_http_methods, require_POST

from apps.accounts.decorators import api_login_required, owner_or_admin_required
from apps.core.utils import parse_json_body, validation_error_response
from apps.opportunities.models import OpportunityActivity
from .forms import EmailTemplateForm, SendEmailForm, TemplateContextForm
from .models import EmailTemplate

logger = logging.getLogger(__name__)


def format_amount(amount):
    """Decimal('1234.56') -> '1 234,56 €'"""
    return f'{amount:,.2f}'.replace(',', ' ').replace('.', ',') + ' €'


def placeholder_values(contact=None, opportunity=None):
    data = {}
    if contact:
        data['{{contact_name}}'] = contact.name
        data['{{contact_first_name}}'] = contact.first_name
        data['{{contact_email}}'] = contact.email or ''
        if contact.company:
            data['{{company_name}}'] = contact.company.name
    if opportunity:
        data['{{opportunity_name}}'] = opportunity.name
        data['{{opportunity_amount}}'] = format_amount(opportunity.amount)
    return data


def _usable_template(request, pk):
    """Own or shared template; admins may use any"""
    template = get_object_or_404(EmailTemplate.objects.select_related('user'), pk=pk)
    if template.user_id != request.user.id and not template.is_shared and not request.user.is_admin():
        raise PermissionDenied('You do not have access to this template.')
    return template


@api_login_required
@require_http_methods(['GET', 'POST'])
def template_collection_view(request):
    """
    GET: active templates the user can use, most used first
         ?category=<key>  ?scope=mine|shared
    POST: create a template owned by the request user
    """
    if request.method == 'POST':
        form = EmailTemplateForm(parse_json_body(request))
        if not form.is_valid():
            return validation_error_response(form)

        template = form.save(commit=False)
        template.user = request.user
        template.save()

        logger.info(f"Email template created: {template.id} - {template.name} by {request.user.email}")
        return JsonResponse({
            'message': 'Template créé avec succès',
            'template': template.to_dict(),
        }, status=201)

    templates = EmailTemplate.objects.accessible(request.user).active().select_related('user')

    category = request.GET.get('category')
    if category:
        templates = templates.by_category(category)

    scope = request.GET.get('scope')
    if scope == 'mine':
        templates = templates.personal(request.user)
    elif scope == 'shared':
        templates = templates.shared()

    templates = templates.order_by('-usage_count', 'name')

    return JsonResponse({
        'templates': [template.to_dict() for template in templates],
        'categories': dict(EmailTemplate.CATEGORY_CHOICES),
        'variables': EmailTemplate.AVAILABLE_VARIABLES,
    })


@api_login_required
@require_http_methods(['GET', 'PUT', 'DELETE'])
def template_detail_view(request, pk):
    if request.method == 'PUT':
        return _template_update(request, pk=pk)
    if request.method == 'DELETE':
        return _template_delete(request, pk=pk)

    template = _usable_template(request, pk)
    return JsonResponse({'template': template.to_dict()})


@owner_or_admin_required(EmailTemplate, field_name='user')
def _template_update(request, pk):
    template = EmailTemplate.objects.get(pk=pk)

    form = EmailTemplateForm(parse_json_body(request), instance=template)
    if not form.is_valid():
        return validation_error_response(form)

    template = form.save()
    return JsonResponse({
        'message': 'Template mis à jour',
        'template': template.to_dict(),
    })


@owner_or_admin_required(EmailTemplate, field_name='user')
def _template_delete(request, pk):
    EmailTemplate.objects.filter(pk=pk).delete()
    logger.info(f"Email template deleted: {pk} by {request.user.email}")
    return JsonResponse({'message': 'Template supprimé'})


@api_login_required
@require_POST
def template_duplicate_view(request, pk):
    template = _usable_template(request, pk)
    copy = template.duplicate(actor=request.user)

    return JsonResponse({
        'message': 'Template dupliqué avec succès',
        'template': copy.to_dict(),
    }, status=201)


@api_login_required
@require_POST
def template_preview_view(request, pk):
    """Render subject/body with the data of an optional contact and opportunity"""
    template = _usable_template(request, pk)

    form = TemplateContextForm(parse_json_body(request))
    if not form.is_valid():
        return validation_error_response(form)

    rendered = template.render(
        placeholder_values(form.cleaned_data['contact_id'], form.cleaned_data['opportunity_id']),
        actor=request.user,
    )

    return JsonResponse({
        'subject': rendered['subject'],
        'body': rendered['body'],
        'variables_used': template.variables or [],
    })


@api_login_required
@require_POST
def template_send_view(request, pk):
    """
    Send an email written from a template

    The subject/body come from the client (already previewed and edited).
    On success the usage counter goes up and, when an opportunity is given,
    an 'email' activity is added to its trail.
    """
    template = _usable_template(request, pk)

    form = SendEmailForm(parse_json_body(request))
    if not form.is_valid():
        return validation_error_response(form)

    data = form.cleaned_data
    message = EmailMultiAlternatives(
        subject=data['subject'],
        body=strip_tags(data['body']),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[data['to']],
        cc=data['cc'],
        bcc=data['bcc'],
        reply_to=[request.user.email],
    )
    message.attach_alternative(data['body'], 'text/html')

    try:
        message.send()
    except (smtplib.SMTPException, OSError) as e:
        logger.exception(f"Sending template {template.id} to {data['to']} failed")
        return JsonResponse({
            'success': False,
            'message': f"Erreur lors de l'envoi de l'email: {e}",
        }, status=500)

    with transaction.atomic():
        template.increment_usage()
        opportunity = data['opportunity_id']
        if opportunity:
            opportunity.log_activity(
                OpportunityActivity.TYPE_EMAIL,
                'Email envoyé',
                actor=request.user,
                description=data['subject'],
                new_value=data['to'],
            )

    contact = data['contact_id']
    logger.info(
        f"Template {template.id} sent to {data['to']} by {request.user.email}"
        + (f" (contact {contact.id})" if contact else '')
    )

    return JsonResponse({
        'success': True,
        'message': 'Email envoyé avec succès',
        'usage_count': template.usage_count,
    })
