import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.shortcuts import get_object_or_404

from backend.core.exceptions import ServiceError
from .models import Business, BusinessMember, Invitation
from .serializers import (
    BusinessSerializer, BusinessCreateSerializer, BusinessMemberSerializer,
    InvitationSerializer, AdminWorkspaceSerializer
)
from .tenancy import resolve_business, require_role, require_super_admin, ADMIN_ROLES, MANAGER_ROLES
from . import services

logger = logging.getLogger('backend.workspaces')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def workspace_list_create(request):
    """List the caller's workspaces or create a new one"""
    try:
        if request.method == 'GET':
            workspaces = services.get_user_workspaces(request.user)
            memberships = {
                m.business_id: m for m in BusinessMember.objects.filter(user=request.user)
            }
            data = []
            for business in workspaces:
                item = BusinessSerializer(business).data
                membership = memberships.get(business.pk)
                item['role'] = membership.role if membership else None
                data.append(item)
            return Response(data)

        serializer = BusinessCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        business = services.create_workspace(
            request.user,
            serializer.validated_data['name'],
            serializer.validated_data.get('slug') or None,
        )
        return Response(BusinessSerializer(business).data, status=status.HTTP_201_CREATED)
    except ServiceError as e:
        logger.warning(f"Workspace request by {request.user} failed: {e.message}")
        return e.to_response()
    except Exception as e:
        logger.error(f"Unexpected error in workspace_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def workspace_detail(request, pk):
    """Retrieve, update (admin) or delete (owner) a workspace"""
    try:
        business, membership = resolve_business(request.user, pk)

        if request.method == 'GET':
            data = BusinessSerializer(business).data
            data['role'] = membership.role
            return Response(data)
        elif request.method == 'PATCH':
            require_role(membership, ADMIN_ROLES)
            serializer = BusinessSerializer(business, data=request.data, partial=True)
            if serializer.is_valid():
                serializer.save()
                logger.info(f"Workspace {pk} updated by {request.user}")
                return Response(serializer.data)
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        else:  # DELETE
            services.delete_workspace(business, request.user)
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()
    except Exception as e:
        logger.error(f"Unexpected error in workspace_detail for pk {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def member_list(request, pk):
    """List the members of a workspace"""
    try:
        business, membership = resolve_business(request.user, pk)
        members = BusinessMember.objects.filter(business=business).select_related('user').order_by('created_at')
        return Response(BusinessMemberSerializer(members, many=True).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def member_detail(request, pk, member_id):
    """Change a member's role/status or remove them (admin only)"""
    try:
        business, membership = resolve_business(request.user, pk)
        require_role(membership, ADMIN_ROLES)
        member = get_object_or_404(BusinessMember, pk=member_id, business=business)

        if request.method == 'PATCH':
            member = services.update_member(
                member, request.user,
                role=request.data.get('role'),
                status=request.data.get('status'),
            )
            logger.info(f"Member {member_id} of business {pk} updated by {request.user}")
            return Response(BusinessMemberSerializer(member).data)
        services.remove_member(member, request.user)
        logger.info(f"Member {member_id} removed from business {pk} by {request.user}")
        return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def invitation_list_create(request, pk):
    """List pending invitations or invite someone (admin/manager)"""
    try:
        business, membership = resolve_business(request.user, pk)
        require_role(membership, MANAGER_ROLES)

        if request.method == 'GET':
            invitations = Invitation.objects.filter(business=business, accepted_at__isnull=True)
            return Response(InvitationSerializer(invitations, many=True).data)

        serializer = InvitationSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        invitation = services.create_invitation(
            business, request.user,
            serializer.validated_data['email'],
            serializer.validated_data.get('role', 'agent'),
        )
        return Response(InvitationSerializer(invitation).data, status=status.HTTP_201_CREATED)
    except ServiceError as e:
        return e.to_response()


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def invitation_revoke(request, pk, invitation_id):
    """Revoke a pending invitation"""
    try:
        business, membership = resolve_business(request.user, pk)
        require_role(membership, MANAGER_ROLES)
        invitation = get_object_or_404(Invitation, pk=invitation_id, business=business)
        invitation.delete()
        logger.info(f"Invitation {invitation_id} of business {pk} revoked by {request.user}")
        return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([AllowAny])
def invitation_lookup(request, token):
    """Public lookup of an invitation by token (shown on the accept page)"""
    try:
        invitation = services.get_invitation_by_token(token)
        return Response(InvitationSerializer(invitation).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invitation_accept(request, token):
    """Accept an invitation as the current user"""
    try:
        membership = services.accept_invitation(token, request.user)
        return Response(BusinessMemberSerializer(membership).data, status=status.HTTP_201_CREATED)
    except ServiceError as e:
        logger.warning(f"Invitation accept failed for {request.user}: {e.message}")
        return e.to_response()


# Super admin views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def admin_workspace_list(request):
    """All workspaces with owner, billing and usage counters"""
    try:
        require_super_admin(request.user)
        workspaces = services.list_all_workspaces(
            search=request.query_params.get('search'),
            status=request.query_params.get('status'),
        )
        return Response(AdminWorkspaceSerializer(workspaces, many=True).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def admin_stats(request):
    """Platform-wide counters for the super admin dashboard"""
    try:
        require_super_admin(request.user)
        return Response(services.admin_stats())
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def admin_approve_lifetime(request, pk):
    try:
        require_super_admin(request.user)
        business = get_object_or_404(Business, pk=pk)
        business = services.approve_lifetime_deal(business, request.user, plan=request.data.get('plan', 'starter'))
        return Response(BusinessSerializer(business).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def admin_reject_payment(request, pk):
    try:
        require_super_admin(request.user)
        business = get_object_or_404(Business, pk=pk)
        business = services.reject_manual_payment(business, request.user)
        return Response(BusinessSerializer(business).data)
    except ServiceError as e:
        return e.to_response()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def admin_set_status(request, pk):
    """Suspend or reactivate a workspace"""
    try:
        require_super_admin(request.user)
        business = get_object_or_404(Business, pk=pk)
        business = services.set_workspace_status(business, request.user, request.data.get('status'))
        return Response(BusinessSerializer(business).data)
    except ServiceError as e:
        return e.to_response()
