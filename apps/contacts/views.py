import csv
import io
import logging
import zipfile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from django.core.exceptions import PermissionDenied
from django.db.models import Count, Q
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods, require_POST

from apps.accounts.decorators import api_login_required
from apps.core.utils import paginate, parse_json_body, validation_error_response
from .forms import AttachContactForm, CompanyForm, ContactForm, ContactImportForm
from .models import Company, Contact
from .tasks import import_contacts

logger = logging.getLogger(__name__)

IMPORT_COLUMNS = ['name', 'email', 'phone', 'address']


def _check_owner(request, owner_id, message):
    if not request.user.can_manage(owner_id):
        raise PermissionDenied(message)


# ==============================================================================
# COMPANIES
# ==============================================================================

@api_login_required
@require_http_methods(['GET', 'POST'])
def company_collection_view(request):
    if request.method == 'POST':
        form = CompanyForm(parse_json_body(request))
        if not form.is_valid():
            return validation_error_response(form)

        company = form.save(commit=False)
        if company.owner_id is None:
            company.owner = request.user
        company.save()

        logger.info(f"Company created: {company.id} - {company.name} by {request.user.email}")
        return JsonResponse({'company': company.to_dict()}, status=201)

    companies = Company.objects.select_related('owner').annotate(contacts_total=Count('contacts'))

    search_query = request.GET.get('q', '').strip()
    if search_query:
        companies = companies.filter(
            Q(name__icontains=search_query) |
            Q(domain__icontains=search_query) |
            Q(industry__icontains=search_query) |
            Q(city__icontains=search_query)
        )

    status = request.GET.get('status')
    if status:
        companies = companies.filter(status=status)

    owner_id = request.GET.get('owner_id')
    if owner_id:
        companies = companies.filter(owner_id=owner_id)

    page_obj, meta = paginate(companies, request, default=15)

    items = []
    for company in page_obj:
        data = company.to_dict()
        data['contacts_count'] = company.contacts_total
        items.append(data)

    return JsonResponse({'companies': items, 'pagination': meta})


@api_login_required
@require_http_methods(['GET', 'PUT', 'PATCH', 'DELETE'])
def company_detail_view(request, pk):
    company = get_object_or_404(Company.objects.select_related('owner'), pk=pk)

    if request.method == 'GET':
        return JsonResponse({'company': company.to_dict(with_contacts_count=True)})

    _check_owner(request, company.owner_id, 'You do not have permission to modify this company.')

    if request.method == 'DELETE':
        company_id = company.id
        company.delete()
        logger.info(f"Company deleted: {company_id} by {request.user.email}")
        return JsonResponse({'message': 'Société supprimée'})

    form = CompanyForm(parse_json_body(request), instance=company)
    if not form.is_valid():
        return validation_error_response(form)

    company = form.save()
    return JsonResponse({'company': company.to_dict(with_contacts_count=True)})


@api_login_required
@require_http_methods(['GET'])
def company_contacts_view(request, pk):
    company = get_object_or_404(Company, pk=pk)
    contacts = company.contacts.select_related('user', 'company')

    search_query = request.GET.get('q', '').strip()
    if search_query:
        contacts = contacts.filter(
            Q(name__icontains=search_query) |
            Q(email__icontains=search_query) |
            Q(phone__icontains=search_query)
        )

    page_obj, meta = paginate(contacts, request, default=15)

    return JsonResponse({
        'company': {'id': company.id, 'name': company.name},
        'contacts': [contact.to_dict() for contact in page_obj],
        'pagination': meta,
    })


@api_login_required
@require_POST
def company_contact_attach_view(request, pk):
    company = get_object_or_404(Company, pk=pk)
    _check_owner(request, company.owner_id, 'You do not have permission to modify this company.')

    form = AttachContactForm(parse_json_body(request), company=company)
    if not form.is_valid():
        return validation_error_response(form)

    contact = form.cleaned_data['contact_id']
    contact.company = company
    contact.save(update_fields=['company', 'updated_at'])

    logger.info(f"Contact {contact.id} attached to company {company.id} by {request.user.email}")
    return JsonResponse({'attached': True, 'contact': contact.to_dict()})


@api_login_required
@require_http_methods(['POST', 'DELETE'])
def company_contact_detach_view(request, pk, contact_pk):
    company = get_object_or_404(Company, pk=pk)
    contact = get_object_or_404(Contact, pk=contact_pk, company=company)
    _check_owner(request, company.owner_id, 'You do not have permission to modify this company.')

    contact.company = None
    contact.save(update_fields=['company', 'updated_at'])

    logger.info(f"Contact {contact.id} detached from company {company.id} by {request.user.email}")
    return JsonResponse({'detached': True})


# ==============================================================================
# CONTACTS
# ==============================================================================

@api_login_required
@require_http_methods(['GET', 'POST'])
def contact_collection_view(request):
    if request.method == 'POST':
        form = ContactForm(parse_json_body(request))
        if not form.is_valid():
            return validation_error_response(form)

        contact = form.save(commit=False)
        contact.user = request.user
        contact.save()

        logger.info(f"Contact created: {contact.id} - {contact.name} by {request.user.email}")
        return JsonResponse({'contact': contact.to_dict()}, status=201)

    contacts = Contact.objects.select_related('company', 'user')

    search_query = request.GET.get('q', '').strip()
    if search_query:
        contacts = contacts.filter(
            Q(name__icontains=search_query) |
            Q(email__icontains=search_query) |
            Q(phone__icontains=search_query) |
            Q(company__name__icontains=search_query)
        )

    status = request.GET.get('status')
    if status:
        contacts = contacts.filter(status=status)

    company_id = request.GET.get('company_id')
    if company_id:
        contacts = contacts.filter(company_id=company_id)

    if request.GET.get('mine'):
        contacts = contacts.filter(user=request.user)

    page_obj, meta = paginate(contacts, request)

    return JsonResponse({
        'contacts': [contact.to_dict() for contact in page_obj],
        'pagination': meta,
    })


@api_login_required
@require_http_methods(['GET', 'PUT', 'PATCH', 'DELETE'])
def contact_detail_view(request, pk):
    contact = get_object_or_404(Contact.objects.select_related('company', 'user'), pk=pk)

    if request.method == 'GET':
        data = contact.to_dict()
        data['opportunities'] = [
            {
                'id': opportunity.id,
                'name': opportunity.name,
                'stage': opportunity.stage,
                'stage_label': opportunity.stage_label,
                'amount': float(opportunity.amount),
            }
            for opportunity in contact.opportunities.all()
        ]
        return JsonResponse({'contact': data})

    _check_owner(request, contact.user_id, 'You do not have permission to modify this contact.')

    if request.method == 'DELETE':
        contact_id = contact.id
        contact.delete()
        logger.info(f"Contact deleted: {contact_id} by {request.user.email}")
        return JsonResponse({'message': 'Contact supprimé'})

    form = ContactForm(parse_json_body(request), instance=contact)
    if not form.is_valid():
        return validation_error_response(form)

    contact = form.save()
    return JsonResponse({'contact': contact.to_dict()})


def _import_row(row_num, cells):
    """Map the cells of one row to the import columns; None for blank or header rows"""
    values = ['' if cell is None else str(cell).strip() for cell in cells]
    if not any(values):
        return None
    if row_num == 1 and values[0].lower() in ('name', 'nom'):
        return None

    values += [''] * len(IMPORT_COLUMNS)
    data = dict(zip(IMPORT_COLUMNS, values))
    data['row_num'] = row_num
    return data


def _read_csv_rows(uploaded_file):
    """';' or ',' separated, header row optional"""
    text = uploaded_file.read().decode('utf-8-sig', errors='replace')
    first_line = text.split('\n', 1)[0]
    delimiter = ';' if first_line.count(';') > first_line.count(',') else ','

    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    return [row for row in (_import_row(row_num, cells) for row_num, cells in enumerate(reader, start=1)) if row]


def _read_excel_rows(uploaded_file):
    """First sheet of an .xlsx workbook, same columns as the CSV"""
    workbook = openpyxl.load_workbook(uploaded_file, read_only=True, data_only=True)
    try:
        sheet = workbook.active
        rows = []
        for row_num, cells in enumerate(sheet.iter_rows(values_only=True), start=1):
            row = _import_row(row_num, cells[:len(IMPORT_COLUMNS)])
            if row:
                rows.append(row)
        return rows
    finally:
        workbook.close()


def _read_import_rows(uploaded_file):
    if uploaded_file.name.lower().endswith('.xlsx'):
        return _read_excel_rows(uploaded_file)
    return _read_csv_rows(uploaded_file)


@api_login_required
@require_POST
def contact_import_view(request):
    """
    Queue a contact import from a CSV or .xlsx file

    Columns: name, email, phone, address (first sheet for workbooks). The rows are handed to the
    import_contacts Celery task; the response carries the task id (and the
    summary when the task ran eagerly).
    """
    form = ContactImportForm(request.POST, request.FILES)
    if not form.is_valid():
        return validation_error_response(form)

    try:
        rows = _read_import_rows(form.cleaned_data['file'])
    except (zipfile.BadZipFile, InvalidFileException) as e:
        logger.warning(f"Unreadable workbook uploaded by {request.user.email}: {e}")
        return JsonResponse({
            'message': 'The given data was invalid.',
            'errors': {'file': ['The workbook cannot be read']},
        }, status=422)

    if not rows:
        return JsonResponse({
            'message': 'The given data was invalid.',
            'errors': {'file': ['The file contains no contact']},
        }, status=422)

    result = import_contacts.delay(rows, request.user.id)

    logger.info(f"Contact import queued by {request.user.email}: {len(rows)} rows (task {result.id})")

    return JsonResponse({
        'message': 'Import en cours',
        'task_id': result.id,
        'rows': len(rows),
        'summary': result.result if result.ready() else None,
    }, status=202)
