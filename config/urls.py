from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

# Main URL Configuration
# Every app exposes its JSON endpoints under /api/

urlpatterns = [

    path('admin/', admin.site.urls),
    path('api/users/', include('apps.accounts.urls')),
    path('api/dashboard/', include('apps.core.urls')),
    path('api/', include('apps.contacts.urls')),
    path('api/', include('apps.opportunities.urls')),
    path('api/reminders/', include('apps.reminders.urls')),
    path('api/documents/', include('apps.documents.urls')),
    path('api/email-templates/', include('apps.emails.urls')),

]

if settings.DEBUG:
    # Media files (documents stored on the local disk)
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
