from django.urls import path
from . import views

app_name = 'contacts'

urlpatterns = [
    # Companies
    path('companies/', views.company_collection_view, name='company_collection'),
    path('companies/<int:pk>/', views.company_detail_view, name='company_detail'),
    path('companies/<int:pk>/contacts/', views.company_contacts_view, name='company_contacts'),
    path('companies/<int:pk>/contacts/attach/', views.company_contact_attach_view, name='company_contact_attach'),
    path('companies/<int:pk>/contacts/<int:contact_pk>/detach/', views.company_contact_detach_view, name='company_contact_detach'),

    # Contacts
    path('contacts/', views.contact_collection_view, name='contact_collection'),
    path('contacts/import/', views.contact_import_view, name='contact_import'),
    path('contacts/<int:pk>/', views.contact_detail_view, name='contact_detail'),
]
