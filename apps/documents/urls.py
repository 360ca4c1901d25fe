from django.urls import path
from . import views

app_name = 'documents'

urlpatterns = [
    path('', views.document_collection_view, name='document_collection'),
    path('<int:pk>/', views.document_detail_view, name='document_detail'),
    path('<int:pk>/download/', views.document_download_view, name='document_download'),
    path('<int:pk>/preview/', views.document_preview_view, name='document_preview'),
    path('<int:pk>/links/', views.document_links_view, name='document_links'),
    path('<int:pk>/versions/', views.document_versions_view, name='document_versions'),
]
