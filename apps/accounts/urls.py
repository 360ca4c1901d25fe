from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    path('', views.user_list_view, name='user_list'),
    path('<int:pk>/toggle-status/', views.user_toggle_status_view, name='user_toggle_status'),
]
