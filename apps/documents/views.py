import logging

from django.contrib.contenttypes.models import ContentType
from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.db.models import Q
from django.http import FileResponse, Http404, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import api_login_required
from apps.contacts.models import Company, Contact
from apps.core.utils import paginate, parse_json_body, validation_error_response
from .forms import DocumentFilterForm, DocumentLinkForm, DocumentUpdateForm, DocumentUploadForm, VersionUploadForm
from .models import Document

logger = logging.getLogger(__name__)

TRUTHY = {'1', 'true', 'yes', 'on'}


def _visible_document(request, pk):
    document = get_object_or_404(Document.objects.select_related('owner'), pk=pk)
    if not document.can_view(request.user):
        raise PermissionDenied('You do not have access to this document.')
    return document


def _editable_document(request, pk):
    document = get_object_or_404(Document.objects.select_related('owner'), pk=pk)
    if not document.can_edit(request.user):
        raise PermissionDenied('You do not have permission to modify this document.')
    return document


@api_login_required
@require_http_methods(['GET', 'POST'])
def document_collection_view(request):
    """
    GET: documents visible to the user, filtered / searched / sorted, paginated
    POST: multipart upload (file, name, description, visibility, tags, links)
    """
    if request.method == 'POST':
        return _document_create(request)

    filter_form = DocumentFilterForm(request.GET)
    if not filter_form.is_valid():
        return validation_error_response(filter_form)
    filters = filter_form.cleaned_data

    documents = Document.objects.visible_to(request.user).select_related('owner').prefetch_related('tags')

    search_query = filters['search'].strip()
    if search_query:
        documents = documents.filter(
            Q(name__icontains=search_query) |
            Q(original_filename__icontains=search_query) |
            Q(description__icontains=search_query) |
            Q(tags__name__iexact=search_query)
        ).distinct()

    if filters['tag']:
        documents = documents.filter(tags__name__iexact=filters['tag']).distinct()

    if filters['type']:
        # 'image' matches image/png, 'pdf' matches the extension
        documents = documents.filter(
            Q(mime_type__istartswith=filters['type']) | Q(extension__iexact=filters['type'])
        )

    if filters['owner_id']:
        documents = documents.filter(owner_id=filters['owner_id'])

    if filters['company_id']:
        documents = documents.filter(
            links__content_type=ContentType.objects.get_for_model(Company),
            links__object_id=filters['company_id'],
        )

    if filters['contact_id']:
        documents = documents.filter(
            links__content_type=ContentType.objects.get_for_model(Contact),
            links__object_id=filters['contact_id'],
        )

    documents = documents.order_by(filters['sort'] or '-created_at', '-id')
    page_obj, meta = paginate(documents, request, default=15, maximum=100)

    return JsonResponse({
        'documents': [document.to_dict() for document in page_obj],
        'pagination': meta,
    })


def _document_create(request):
    form = DocumentUploadForm(request.POST, request.FILES)
    if not form.is_valid():
        return validation_error_response(form)

    data = form.cleaned_data
    upload = data['file']

    with transaction.atomic():
        document = Document.create_from_upload(
            upload,
            owner=request.user,
            name=data['name'] or None,
            visibility=data['visibility'],
            description=data['description'],
        )
        if data['tags']:
            document.tags.set(data['tags'])
        for target, role in data['links']:
            document.link(target, role)

    logger.info(f"Document uploaded: {document.id} - {document.original_filename} ({document.size_human}) by {request.user.email}")

    return JsonResponse({
        'message': 'Document téléversé avec succès',
        'document': document.to_dict(detail=True),
    }, status=201)


@api_login_required
@require_http_methods(['GET', 'PATCH', 'DELETE'])
def document_detail_view(request, pk):
    if request.method == 'GET':
        document = _visible_document(request, pk)
        return JsonResponse({'document': document.to_dict(detail=True)})

    document = _editable_document(request, pk)

    if request.method == 'DELETE':
        hard = request.GET.get('hard_delete', '').lower() in TRUTHY
        if hard:
            document.hard_delete()
        else:
            document.soft_delete()
        logger.info(f"Document {'purged' if hard else 'trashed'}: {pk} by {request.user.email}")
        return JsonResponse({'status': 'ok'})

    form = DocumentUpdateForm(parse_json_body(request))
    if not form.is_valid():
        return validation_error_response(form)

    form.apply(document)
    return JsonResponse({
        'message': 'Document mis à jour',
        'document': document.to_dict(detail=True),
    })


def _file_response(document, as_attachment):
    if not document.file_exists():
        raise Http404('File not found')

    response = FileResponse(
        document.open_file(),
        as_attachment=as_attachment,
        filename=document.original_filename,
        content_type=document.mime_type or 'application/octet-stream',
    )
    if not as_attachment:
        response['Cache-Control'] = 'private, max-age=3600'
    return response


@api_login_required
@require_http_methods(['GET'])
def document_download_view(request, pk):
    document = _visible_document(request, pk)
    return _file_response(document, as_attachment=True)


@api_login_required
@require_http_methods(['GET'])
def document_preview_view(request, pk):
    document = _visible_document(request, pk)
    return _file_response(document, as_attachment=False)


@api_login_required
@require_http_methods(['POST', 'DELETE'])
def document_links_view(request, pk):
    """
    POST: attach a company/contact {type, id, role}
    DELETE: detach it {type, id}
    """
    document = _editable_document(request, pk)

    form = DocumentLinkForm(parse_json_body(request))
    if not form.is_valid():
        return validation_error_response(form)

    target = form.cleaned_data['target']
    if request.method == 'POST':
        document.link(target, form.cleaned_data['role'])
    else:
        document.unlink(target)

    return JsonResponse({'document': document.to_dict(detail=True)})


@api_login_required
@require_http_methods(['GET', 'POST'])
def document_versions_view(request, pk):
    """
    GET: every version, newest first
    POST: upload the next version (multipart 'file')
    """
    if request.method == 'GET':
        document = _visible_document(request, pk)
        return JsonResponse({
            'versions': [version.to_dict() for version in document.versions.select_related('created_by')],
        })

    document = _editable_document(request, pk)

    form = VersionUploadForm(request.POST, request.FILES)
    if not form.is_valid():
        return validation_error_response(form)

    version = document.add_version(form.cleaned_data['file'], actor=request.user)
    logger.info(f"Document {document.id} now at version {version.version} ({request.user.email})")

    return JsonResponse({
        'version': version.version,
        'document': document.to_dict(),
    })
