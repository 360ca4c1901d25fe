from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    path('stats/', views.dashboard_stats_view, name='stats'),
    path('opportunities-by-stage/', views.opportunities_by_stage_view, name='opportunities_by_stage'),
    path('recent-activities/', views.recent_activities_view, name='recent_activities'),
]
