from django.urls import path
from . import views

app_name = 'emails'

urlpatterns = [
    path('', views.template_collection_view, name='template_collection'),
    path('<int:pk>/', views.template_detail_view, name='template_detail'),
    path('<int:pk>/duplicate/', views.template_duplicate_view, name='template_duplicate'),
    path('<int:pk>/preview/', views.template_preview_view, name='template_preview'),
    path('<int:pk>/send/', views.template_send_view, name='template_send'),
]
