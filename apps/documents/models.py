import math
import mimetypes
import os
import uuid

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.core.files.storage import storages
from django.db import models, transaction
from django.db.models import Max, Q
from django.utils import timezone
from taggit.managers import TaggableManager


SIZE_UNITS = ['B', 'KB', 'MB', 'GB', 'TB']


def human_size(size_bytes):
    """1536 -> '1.5KB', 0 -> '0B'"""
    size = int(size_bytes or 0)
    if size <= 0:
        return '0B'
    exponent = min(int(math.floor(math.log(size, 1024))), len(SIZE_UNITS) - 1)
    return f'{round(size / (1024 ** exponent), 1):g}{SIZE_UNITS[exponent]}'


def upload_mime_type(upload):
    return (
        getattr(upload, 'content_type', None)
        or mimetypes.guess_type(upload.name)[0]
        or 'application/octet-stream'
    )


def upload_extension(filename):
    return os.path.splitext(filename)[1].lstrip('.').lower()


class DocumentQuerySet(models.QuerySet):

    def alive(self):
        return self.filter(deleted_at__isnull=True)

    def trashed(self):
        return self.filter(deleted_at__isnull=False)

    def visible_to(self, user):
        """Admins see everything, others their own documents plus team/company ones"""
        if user.is_admin():
            return self
        return self.filter(Q(owner=user) | ~Q(visibility=Document.VISIBILITY_PRIVATE))


class DocumentManager(models.Manager.from_queryset(DocumentQuerySet)):
    """Soft-deleted documents are hidden unless asked for through all_objects"""

    def get_queryset(self):
        return super().get_queryset().alive()


class Document(models.Model):

    VISIBILITY_PRIVATE = 'private'
    VISIBILITY_TEAM = 'team'
    VISIBILITY_COMPANY = 'company'
    VISIBILITY_CHOICES = [
        (VISIBILITY_PRIVATE, 'Privé'),
        (VISIBILITY_TEAM, 'Équipe'),
        (VISIBILITY_COMPANY, 'Entreprise'),
    ]

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=255, db_index=True)
    original_filename = models.CharField(max_length=255)
    mime_type = models.CharField(max_length=255)
    extension = models.CharField(max_length=20, blank=True)
    size_bytes = models.PositiveBigIntegerField(default=0)

    # Where the current version's bytes live
    storage_disk = models.CharField(max_length=50, default='default', help_text='Alias in settings.STORAGES')
    storage_path = models.CharField(max_length=500)

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='documents')
    visibility = models.CharField(max_length=20, choices=VISIBILITY_CHOICES, default=VISIBILITY_PRIVATE, db_index=True)
    description = models.TextField(blank=True)
    tags = TaggableManager(blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True, help_text='Set when the document is moved to the trash')

    objects = DocumentManager()
    all_objects = DocumentQuerySet.as_manager()

    class Meta:
        verbose_name = 'Document'
        verbose_name_plural = 'Documents'
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    @property
    def size_human(self):
        return human_size(self.size_bytes)

    @property
    def storage(self):
        return storages[self.storage_disk]

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    def can_view(self, user):
        return user.is_admin() or self.owner_id == user.id or self.visibility != self.VISIBILITY_PRIVATE

    def can_edit(self, user):
        return user.can_manage(self.owner_id)

    # STORAGE
    def _folder(self):
        created = timezone.localtime(self.created_at) if self.created_at else timezone.localtime()
        return f'documents/{created:%Y/%m}/{self.uuid}'

    @classmethod
    def create_from_upload(cls, upload, owner, name=None, disk=None, **fields):
        """
        Store an uploaded file and create the document with its version 1

        Bytes go to documents/<Y>/<m>/<uuid>/<filename> on the given storage alias.
        """
        disk = disk or settings.DOCUMENT_STORAGE_DISK
        document = cls(
            name=name or os.path.splitext(upload.name)[0],
            original_filename=upload.name,
            mime_type=upload_mime_type(upload),
            extension=upload_extension(upload.name),
            size_bytes=upload.size,
            storage_disk=disk,
            owner=owner,
            **fields
        )
        document.storage_path = document.storage.save(f'{document._folder()}/{upload.name}', upload)

        with transaction.atomic():
            document.save()
            DocumentVersion.objects.create(
                document=document,
                version=1,
                storage_path=document.storage_path,
                mime_type=document.mime_type,
                size_bytes=document.size_bytes,
                created_by=owner,
            )
        return document

    def add_version(self, upload, actor):
        """
        Append the next version and point the document at it

        The document row is locked while the next number is computed, so two
        concurrent uploads cannot get the same version number.
        """
        with transaction.atomic():
            Document.all_objects.select_for_update().get(pk=self.pk)
            current = self.versions.aggregate(highest=Max('version'))['highest'] or 0
            next_version = current + 1

            path = self.storage.save(f'{self._folder()}/v{next_version}-{upload.name}', upload)
            version = DocumentVersion.objects.create(
                document=self,
                version=next_version,
                storage_path=path,
                mime_type=upload_mime_type(upload),
                size_bytes=upload.size,
                created_by=actor,
            )

            self.storage_path = path
            self.mime_type = version.mime_type
            self.size_bytes = version.size_bytes
            self.original_filename = upload.name
            self.extension = upload_extension(upload.name)
            self.save(update_fields=['storage_path', 'mime_type', 'size_bytes', 'original_filename', 'extension', 'updated_at'])

        return version

    def open_file(self):
        return self.storage.open(self.storage_path, 'rb')

    def file_exists(self):
        return bool(self.storage_path) and self.storage.exists(self.storage_path)

    def soft_delete(self):
        self.deleted_at = timezone.now()
        self.save(update_fields=['deleted_at', 'updated_at'])

    def hard_delete(self):
        """Remove the stored bytes of every version, then the rows"""
        paths = set(self.versions.values_list('storage_path', flat=True))
        paths.add(self.storage_path)
        for path in paths:
            if path and self.storage.exists(path):
                self.storage.delete(path)
        self.delete()

    # LINKS
    def link(self, target, role=''):
        link, _ = DocumentLink.objects.update_or_create(
            document=self,
            content_type=ContentType.objects.get_for_model(target),
            object_id=target.pk,
            defaults={'role': role or ''},
        )
        return link

    def unlink(self, target):
        deleted, _ = DocumentLink.objects.filter(
            document=self,
            content_type=ContentType.objects.get_for_model(target),
            object_id=target.pk,
        ).delete()
        return deleted

    def linked(self, model):
        """[(object, role), ...] for one target model"""
        links = self.links.filter(content_type=ContentType.objects.get_for_model(model))
        roles = dict(links.values_list('object_id', 'role'))
        return [(obj, roles[obj.pk]) for obj in model.objects.filter(pk__in=roles.keys()).order_by('name')]

    def to_dict(self, detail=False):
        data = {
            'id': self.id,
            'uuid': str(self.uuid),
            'name': self.name,
            'original_filename': self.original_filename,
            'mime_type': self.mime_type,
            'extension': self.extension,
            'size_bytes': self.size_bytes,
            'size_human': self.size_human,
            'storage_disk': self.storage_disk,
            'storage_path': self.storage_path,
            'visibility': self.visibility,
            'description': self.description,
            'tags': sorted(tag.name for tag in self.tags.all()),
            'owner': self.owner.to_summary() if self.owner_id else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'deleted_at': self.deleted_at.isoformat() if self.deleted_at else None,
        }
        if detail:
            from apps.contacts.models import Company, Contact

            data['companies'] = [
                {'id': company.id, 'name': company.name, 'role': role}
                for company, role in self.linked(Company)
            ]
            data['contacts'] = [
                {'id': contact.id, 'name': contact.name, 'role': role}
                for contact, role in self.linked(Contact)
            ]
        return data


class DocumentVersion(models.Model):
    """One uploaded blob of a document; numbers start at 1 and only grow"""

    document = models.ForeignKey(Document, on_delete=models.CASCADE, related_name='versions')
    version = models.PositiveIntegerField()
    storage_path = models.CharField(max_length=500)
    mime_type = models.CharField(max_length=255)
    size_bytes = models.PositiveBigIntegerField(default=0)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='document_versions')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Document Version'
        verbose_name_plural = 'Document Versions'
        ordering = ['-version']
        constraints = [
            models.UniqueConstraint(fields=['document', 'version'], name='documents_version_unique'),
        ]

    def __str__(self):
        return f"{self.document.name} v{self.version}"

    def to_dict(self):
        return {
            'id': self.id,
            'document_id': self.document_id,
            'version': self.version,
            'storage_path': self.storage_path,
            'mime_type': self.mime_type,
            'size_bytes': self.size_bytes,
            'size_human': human_size(self.size_bytes),
            'created_by': self.created_by.to_summary() if self.created_by_id else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class DocumentLink(models.Model):
    """Attaches a document to a company or a contact, with an optional role"""

    document = models.ForeignKey(Document, on_delete=models.CASCADE, related_name='links')
    content_type = models.ForeignKey(ContentType, on_delete=models.CASCADE)
    object_id = models.PositiveBigIntegerField()
    target = GenericForeignKey('content_type', 'object_id')
    role = models.CharField(max_length=50, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Document Link'
        verbose_name_plural = 'Document Links'
        constraints = [
            models.UniqueConstraint(fields=['document', 'content_type', 'object_id'], name='documents_link_unique'),
        ]
        indexes = [
            models.Index(fields=['content_type', 'object_id'], name='documents_d_content_4b1e7a_idx'),
        ]

    def __str__(self):
        return f"{self.document} -> {self.content_type.model} #{self.object_id}"
