from django.urls import path
from . import views

app_name = 'reminders'

urlpatterns = [
    path('', views.reminder_collection_view, name='reminder_collection'),
    path('upcoming/', views.reminder_upcoming_view, name='reminder_upcoming'),
    path('count/', views.reminder_count_view, name='reminder_count'),
    path('<int:pk>/', views.reminder_detail_view, name='reminder_detail'),
    path('<int:pk>/complete/', views.reminder_complete_view, name='reminder_complete'),
    path('<int:pk>/snooze/', views.reminder_snooze_view, name='reminder_snooze'),
]
