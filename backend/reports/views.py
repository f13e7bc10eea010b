import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404

from backend.core.exceptions import ServiceError
from backend.core.tabular import workbook_response
from backend.workspaces.tenancy import get_request_business, require_role, MANAGER_ROLES
from .models import SavedReport
from .serializers import SavedReportSerializer
from . import services

logger = logging.getLogger('backend.reports')

INVALID_FILTERS = {'error': 'Invalid report filters (dates must be YYYY-MM-DD, ids must be numbers)'}


def _filters_or_400(params):
    try:
        return services.parse_report_filters(params), None
    except ValueError:
        return None, Response(INVALID_FILTERS, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard(request):
    """KPIs + today's order statistics + plan usage for the dashboard home"""
    try:
        business, membership = get_request_business(request)
        filters, error = _filters_or_400(request.query_params)
        if error:
            return error
        return Response(services.get_dashboard(business, filters))
    except ServiceError as e:
        return e.to_response()
    except Exception as e:
        logger.error(f"Error building dashboard: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to build dashboard'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def kpis(request):
    try:
        business, membership = get_request_business(request)
        filters, error = _filters_or_400(request.query_params)
        if error:
            return error
        data = services.get_kpis(business, filters)
        return Response({**data, 'period': {'from': filters['date_from'], 'to': filters['date_to']}})
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def time_series(request):
    try:
        business, membership = get_request_business(request)
        filters, error = _filters_or_400(request.query_params)
        if error:
            return error
        return Response(services.get_time_series(business, filters))
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def breakdown(request, dimension):
    """Metrics grouped by country, city, carrier, employee, customer, status or product"""
    try:
        business, membership = get_request_business(request)
        filters, error = _filters_or_400(request.query_params)
        if error:
            return error
        if dimension != 'product' and dimension not in services.BREAKDOWN_DIMENSIONS:
            return Response({'error': f'Unknown breakdown: {dimension}'}, status=status.HTTP_400_BAD_REQUEST)
        return Response(services.get_breakdown(business, filters, dimension))
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def cod_report(request):
    """Cash collection summary: pending / collected / partial / failed"""
    try:
        business, membership = get_request_business(request)
        filters, error = _filters_or_400(request.query_params)
        if error:
            return error
        return Response(services.get_cod_report(business, filters))
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def financial_breakdown(request):
    try:
        business, membership = get_request_business(request)
        filters, error = _filters_or_400(request.query_params)
        if error:
            return error
        return Response(services.get_financial_breakdown(business, filters))
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def report_table(request):
    try:
        business, membership = get_request_business(request)
        filters, error = _filters_or_400(request.query_params)
        if error:
            return error
        group_by = request.query_params.get('group_by', 'day')
        return Response(services.get_report_table(business, filters, group_by))
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def report_export(request):
    try:
        business, membership = get_request_business(request)
        filters, error = _filters_or_400(request.query_params)
        if error:
            return error
        group_by = request.query_params.get('group_by', 'day')
        workbook = services.export_report_excel(business, filters, group_by)
        logger.info(f"User {request.user} exported {group_by} report for business {business.pk}")
        return workbook_response(workbook, f"report_{filters['date_from']}_{filters['date_to']}.xlsx")
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def saved_report_list_create(request):
    try:
        business, membership = get_request_business(request)

        if request.method == 'GET':
            reports = SavedReport.objects.filter(business=business).select_related('created_by')
            return Response(SavedReportSerializer(reports, many=True).data)

        require_role(membership, MANAGER_ROLES)
        serializer = SavedReportSerializer(data=request.data)
        if serializer.is_valid():
            report = serializer.save(business=business, created_by=request.user)
            return Response(SavedReportSerializer(report).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def saved_report_detail(request, pk):
    try:
        business, membership = get_request_business(request)
        report = get_object_or_404(SavedReport, pk=pk, business=business)

        if request.method == 'GET':
            return Response(SavedReportSerializer(report).data)

        require_role(membership, MANAGER_ROLES)
        if request.method in ('PUT', 'PATCH'):
            serializer = SavedReportSerializer(report, data=request.data, partial=request.method == 'PATCH')
            if serializer.is_valid():
                serializer.save()
                return Response(serializer.data)
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        else:  # DELETE
            report.delete()
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def saved_report_run(request, pk):
    """Run a saved report; query params override the stored filters"""
    try:
        business, membership = get_request_business(request)
        report = get_object_or_404(SavedReport, pk=pk, business=business)
        params = {**report.filters_json, **request.query_params.dict()}
        filters, error = _filters_or_400(params)
        if error:
            return error
        group_by = params.get('group_by', report.group_by)
        data = services.get_report_table(business, filters, group_by)
        return Response({'report': SavedReportSerializer(report).data, **data})
    except ServiceError as e:
        return e.to_response()
