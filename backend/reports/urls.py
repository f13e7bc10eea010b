from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard/', views.dashboard, name='report-dashboard'),
    path('reports/kpis/', views.kpis, name='report-kpis'),
    path('reports/time-series/', views.time_series, name='report-time-series'),
    path('reports/breakdown/<str:dimension>/', views.breakdown, name='report-breakdown'),
    path('reports/cod/', views.cod_report, name='report-cod'),
    path('reports/financial/', views.financial_breakdown, name='report-financial'),
    path('reports/table/', views.report_table, name='report-table'),
    path('reports/export/', views.report_export, name='report-export'),
    path('reports/saved/', views.saved_report_list_create, name='saved-report-list-create'),
    path('reports/saved/<int:pk>/', views.saved_report_detail, name='saved-report-detail'),
    path('reports/saved/<int:pk>/run/', views.saved_report_run, name='saved-report-run'),
]
