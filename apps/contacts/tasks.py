import logging

from celery import shared_task
from django.contrib.auth import get_user_model

from .forms import ContactImportRowForm

logger = logging.getLogger(__name__)

User = get_user_model()


@shared_task
def import_contacts(rows, user_id):
    """
    Create contacts from parsed CSV rows

    Each row is validated with the contact form; invalid rows are logged
    and skipped, the rest are owned by the importing user.

    Args:
        rows (list): [{'row_num', 'name', 'email', 'phone', 'address'}, ...]
        user_id (int): importing user

    Returns:
        dict: {'created': int, 'skipped': int, 'errors': [str, ...]}
    """
    user = User.objects.filter(pk=user_id).first()

    results = {
        'created': 0,
        'skipped': 0,
        'errors': []
    }

    for row in rows:
        row_num = row.get('row_num')
        form = ContactImportRowForm(row)

        if not form.is_valid():
            messages = '; '.join(
                f"{field}: {' '.join(str(message) for message in field_errors)}"
                for field, field_errors in form.errors.items()
            )
            logger.warning(f"Contact import: row {row_num} skipped ({messages})")
            results['errors'].append(f"Row {row_num}: {messages}")
            results['skipped'] += 1
            continue

        contact = form.save(commit=False)
        contact.user = user
        contact.save()
        results['created'] += 1

    logger.info(
        f"Contact import by user {user_id}: {results['created']} created, {results['skipped']} skipped"
    )
    return results
