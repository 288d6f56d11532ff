from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.shortcuts import get_object_or_404

from backoffice.core.permissions import IsOrganizationMember, has_kitchen_permission
from backoffice.core.utils import get_current_membership, log_activity
from backoffice.core.views import forbidden
from .filters import MasterIngredientFilter
from .models import MasterIngredient, UmbrellaIngredient
from .serializers import MasterIngredientSerializer, UmbrellaIngredientSerializer, UmbrellaMemberSerializer
from .umbrella import add_master_ingredient, remove_master_ingredient, set_primary_master_ingredient

WRITE_ACTIONS = {'POST': 'create', 'PUT': 'edit', 'PATCH': 'edit', 'DELETE': 'delete'}


def can_write_inventory(membership, method):
    return has_kitchen_permission(membership.kitchen_role, 'inventory', WRITE_ACTIONS.get(method, 'edit'))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def master_ingredient_list_create(request):
    """List master ingredients (paginated) or create one"""
    membership = get_current_membership(request)
    organization = membership.organization

    if request.method == 'GET':
        queryset = MasterIngredient.objects.filter(organization=organization)
        filterset = MasterIngredientFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs.order_by('product', 'id')

        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', 50))
        paginator = Paginator(queryset, limit)
        page_obj = paginator.get_page(page)

        serializer = MasterIngredientSerializer(page_obj, many=True)
        return Response({
            'results': serializer.data,
            'count': paginator.count,
            'next': page_obj.next_page_number() if page_obj.has_next() else None,
            'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
            'page': page,
            'page_size': limit,
            'total_pages': paginator.num_pages,
        })

    if not can_write_inventory(membership, request.method):
        return forbidden()

    serializer = MasterIngredientSerializer(data=request.data)
    if serializer.is_valid():
        ingredient = serializer.save(organization=organization)
        log_activity(
            organization=organization,
            user=request.user,
            activity_type='master_ingredient_created',
            details={'name': ingredient.product, 'item_code': ingredient.item_code},
        )
        return Response(MasterIngredientSerializer(ingredient).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def master_ingredient_detail(request, pk):
    """Retrieve, update or delete a master ingredient"""
    membership = get_current_membership(request)
    ingredient = get_object_or_404(MasterIngredient, pk=pk, organization=membership.organization)

    if request.method == 'GET':
        return Response(MasterIngredientSerializer(ingredient).data)

    if not can_write_inventory(membership, request.method):
        return forbidden()

    if request.method == 'DELETE':
        ingredient.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = MasterIngredientSerializer(ingredient, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def umbrella_ingredient_list_create(request):
    """List umbrella ingredients with member details or create one"""
    membership = get_current_membership(request)
    organization = membership.organization

    if request.method == 'GET':
        queryset = UmbrellaIngredient.objects.filter(organization=organization).prefetch_related('master_ingredients')
        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(name__icontains=search)
        return Response(UmbrellaIngredientSerializer(queryset, many=True).data)

    if not can_write_inventory(membership, request.method):
        return forbidden()

    serializer = UmbrellaIngredientSerializer(data=request.data)
    if serializer.is_valid():
        umbrella = serializer.save(organization=organization)
        log_activity(
            organization=organization,
            user=request.user,
            activity_type='umbrella_ingredient_created',
            details={'name': umbrella.name},
        )
        return Response(UmbrellaIngredientSerializer(umbrella).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def umbrella_ingredient_detail(request, pk):
    """Retrieve, update or delete an umbrella ingredient"""
    membership = get_current_membership(request)
    umbrella = get_object_or_404(UmbrellaIngredient, pk=pk, organization=membership.organization)

    if request.method == 'GET':
        return Response(UmbrellaIngredientSerializer(umbrella).data)

    if not can_write_inventory(membership, request.method):
        return forbidden()

    if request.method == 'DELETE':
        umbrella.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = UmbrellaIngredientSerializer(umbrella, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def umbrella_member_add(request, pk):
    """Add a master ingredient to an umbrella ingredient"""
    membership = get_current_membership(request)
    if not can_write_inventory(membership, 'PATCH'):
        return forbidden()
    umbrella = get_object_or_404(UmbrellaIngredient, pk=pk, organization=membership.organization)

    serializer = UmbrellaMemberSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    ingredient = get_object_or_404(
        MasterIngredient, pk=serializer.validated_data['master_ingredient_id'], organization=membership.organization
    )

    try:
        created = add_master_ingredient(umbrella, ingredient)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    umbrella.refresh_from_db()
    return Response(
        UmbrellaIngredientSerializer(umbrella).data,
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def umbrella_member_remove(request, pk, ingredient_id):
    """Remove a master ingredient from an umbrella ingredient"""
    membership = get_current_membership(request)
    if not can_write_inventory(membership, 'PATCH'):
        return forbidden()
    umbrella = get_object_or_404(UmbrellaIngredient, pk=pk, organization=membership.organization)
    ingredient = get_object_or_404(MasterIngredient, pk=ingredient_id, organization=membership.organization)

    try:
        umbrella = remove_master_ingredient(umbrella, ingredient)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(UmbrellaIngredientSerializer(umbrella).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def umbrella_primary_set(request, pk):
    """Set the primary master ingredient of an umbrella ingredient"""
    membership = get_current_membership(request)
    if not can_write_inventory(membership, 'PATCH'):
        return forbidden()
    umbrella = get_object_or_404(UmbrellaIngredient, pk=pk, organization=membership.organization)

    serializer = UmbrellaMemberSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    ingredient = get_object_or_404(
        MasterIngredient, pk=serializer.validated_data['master_ingredient_id'], organization=membership.organization
    )

    try:
        umbrella = set_primary_master_ingredient(umbrella, ingredient)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(UmbrellaIngredientSerializer(umbrella).data)
