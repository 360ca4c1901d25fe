from django.urls import path
from . import views, views_forecast, views_kanban

app_name = 'opportunities'

urlpatterns = [
    path('opportunities/', views.opportunity_collection_view, name='opportunity_collection'),
    path('opportunities/metrics/', views.opportunity_metrics_view, name='opportunity_metrics'),
    path('opportunities/export/', views.opportunity_export_view, name='opportunity_export'),
    path('opportunities/<int:pk>/', views.opportunity_detail_view, name='opportunity_detail'),
    path('opportunities/<int:pk>/activities/', views.opportunity_activity_create_view, name='opportunity_activity_create'),
    path('opportunities/<int:pk>/duplicate/', views.opportunity_duplicate_view, name='opportunity_duplicate'),
    path('opportunities/<int:pk>/timeline/', views.opportunity_timeline_view, name='opportunity_timeline'),
    path('opportunities/<int:pk>/timeline/note/', views.opportunity_timeline_note_view, name='opportunity_timeline_note'),
    path('opportunities/activities/<int:pk>/complete/', views.activity_complete_view, name='activity_complete'),

    # Kanban
    path('kanban/', views_kanban.kanban_board_view, name='kanban_board'),
    path('kanban/stats/', views_kanban.kanban_stats_view, name='kanban_stats'),
    path('kanban/<int:pk>/stage/', views_kanban.kanban_move_view, name='kanban_move'),

    # Forecast
    path('forecast/', views_forecast.forecast_view, name='forecast'),
]
