import logging
from datetime import date

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings
from django.db import transaction
from django.shortcuts import get_object_or_404

from backoffice.core.permissions import IsOrganizationMember, has_kitchen_permission
from backoffice.core.utils import get_current_membership, log_activity
from backoffice.core.views import forbidden
from backoffice.ingredients.models import MasterIngredient
from .csv_import import (
    CSVImportError, detect_date_from_filename, import_invoice_rows, map_rows, parse_invoice_csv,
)
from .models import VendorCode, VendorImport, VendorPriceHistory, VendorTemplate
from .pricing import get_vendor_analytics, recent_price_changes, record_price, set_current_code
from .serializers import (
    VendorCodeSerializer, VendorPriceHistorySerializer, RecordPriceSerializer,
    VendorPriceChangeSerializer, VendorTemplateSerializer, VendorImportSerializer,
    InvoiceImportSerializer, InvoiceFileSerializer,
)

logger = logging.getLogger(__name__)

PREVIEW_ROWS = 100
MAX_PRICE_CHANGE_DAYS = 730


def can_manage_inventory(membership, action='edit'):
    return has_kitchen_permission(membership.kitchen_role, 'inventory', action)


def parse_query_date(value):
    if not value:
        return None
    return date.fromisoformat(value)


# Vendor code views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def vendor_code_list_create(request):
    """List vendor codes or create one"""
    membership = get_current_membership(request)
    organization = membership.organization

    if request.method == 'GET':
        queryset = VendorCode.objects.select_related('master_ingredient').filter(organization=organization)
        master_ingredient = request.query_params.get('master_ingredient')
        if master_ingredient:
            queryset = queryset.filter(master_ingredient_id=master_ingredient)
        vendor_id = request.query_params.get('vendor_id')
        if vendor_id:
            queryset = queryset.filter(vendor_id=vendor_id)
        if request.query_params.get('current') == 'true':
            queryset = queryset.filter(is_current=True)
        return Response(VendorCodeSerializer(queryset, many=True).data)

    if not can_manage_inventory(membership, 'create'):
        return forbidden()

    serializer = VendorCodeSerializer(data=request.data, context={'organization': organization})
    if serializer.is_valid():
        with transaction.atomic():
            if serializer.validated_data.get('is_current', True):
                VendorCode.objects.filter(
                    master_ingredient=serializer.validated_data['master_ingredient'],
                    vendor_id=serializer.validated_data['vendor_id'],
                    is_current=True,
                ).update(is_current=False)
            vendor_code = serializer.save(organization=organization)
        log_activity(
            organization=organization,
            user=request.user,
            activity_type='vendor_code_created',
            details={'name': vendor_code.master_ingredient.product, 'code': vendor_code.code,
                     'vendor_id': vendor_code.vendor_id},
        )
        return Response(VendorCodeSerializer(vendor_code).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def vendor_code_detail(request, pk):
    """Retrieve, update or delete a vendor code"""
    membership = get_current_membership(request)
    vendor_code = get_object_or_404(VendorCode, pk=pk, organization=membership.organization)

    if request.method == 'GET':
        return Response(VendorCodeSerializer(vendor_code).data)

    if request.method == 'DELETE':
        if not can_manage_inventory(membership, 'delete'):
            return forbidden()
        vendor_code.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    if not can_manage_inventory(membership, 'edit'):
        return forbidden()

    serializer = VendorCodeSerializer(
        vendor_code, data=request.data, partial=request.method == 'PATCH',
        context={'organization': membership.organization},
    )
    if serializer.is_valid():
        with transaction.atomic():
            # Clear the other current codes before the partial unique index sees two
            if serializer.validated_data.get('is_current'):
                VendorCode.objects.filter(
                    master_ingredient=serializer.validated_data.get('master_ingredient', vendor_code.master_ingredient),
                    vendor_id=serializer.validated_data.get('vendor_id', vendor_code.vendor_id),
                    is_current=True,
                ).exclude(pk=vendor_code.pk).update(is_current=False)
            vendor_code = serializer.save()
        return Response(VendorCodeSerializer(vendor_code).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def vendor_code_set_current(request, pk):
    """Make a vendor code the current one for its ingredient and vendor"""
    membership = get_current_membership(request)
    if not can_manage_inventory(membership, 'edit'):
        return forbidden()
    vendor_code = get_object_or_404(VendorCode, pk=pk, organization=membership.organization)
    vendor_code = set_current_code(vendor_code)
    return Response(VendorCodeSerializer(vendor_code).data)


# Price views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def vendor_price_list_create(request):
    """Price history (filterable by ingredient and vendor) or record a new price"""
    membership = get_current_membership(request)
    organization = membership.organization

    if request.method == 'GET':
        queryset = VendorPriceHistory.objects.select_related('master_ingredient').filter(organization=organization)
        master_ingredient = request.query_params.get('master_ingredient')
        if master_ingredient:
            queryset = queryset.filter(master_ingredient_id=master_ingredient)
        vendor_id = request.query_params.get('vendor_id')
        if vendor_id:
            queryset = queryset.filter(vendor_id=vendor_id)
        queryset = queryset.order_by('-effective_date', '-created_at')[:500]
        return Response(VendorPriceHistorySerializer(queryset, many=True).data)

    if not can_manage_inventory(membership, 'edit'):
        return forbidden()

    serializer = RecordPriceSerializer(data=request.data, context={'organization': organization})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    ingredient = MasterIngredient.objects.get(pk=data['master_ingredient_id'])
    try:
        history, change = record_price(
            ingredient,
            data['vendor_id'],
            data['price'],
            effective_date=data.get('effective_date'),
            notes=data.get('notes', ''),
            user=request.user,
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    if change is not None:
        log_activity(
            organization=organization,
            user=request.user,
            activity_type='price_changed',
            details={'product_name': ingredient.product, 'vendor_id': data['vendor_id'],
                     'old_price': str(change.old_price), 'new_price': str(change.new_price),
                     'change_percent': str(change.change_percent)},
        )
    return Response({
        'history': VendorPriceHistorySerializer(history).data,
        'change': VendorPriceChangeSerializer(change).data if change else None,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def vendor_price_change_list(request):
    """Recent non-zero price changes, newest first"""
    membership = get_current_membership(request)
    try:
        days = int(request.query_params.get('days', 30))
    except (TypeError, ValueError):
        return Response({'error': 'days must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    if not 1 <= days <= MAX_PRICE_CHANGE_DAYS:
        return Response({'error': f'days must be between 1 and {MAX_PRICE_CHANGE_DAYS}'},
                        status=status.HTTP_400_BAD_REQUEST)

    queryset = recent_price_changes(membership.organization, days=days)
    vendor_id = request.query_params.get('vendor_id')
    if vendor_id:
        queryset = queryset.filter(vendor_id=vendor_id)
    return Response(VendorPriceChangeSerializer(queryset, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def vendor_analytics(request):
    """Per-vendor price statistics for a date range (cached)"""
    membership = get_current_membership(request)
    try:
        start_date = parse_query_date(request.query_params.get('start_date'))
        end_date = parse_query_date(request.query_params.get('end_date'))
    except ValueError:
        return Response({'error': 'Dates must be in YYYY-MM-DD format'}, status=status.HTTP_400_BAD_REQUEST)

    data = get_vendor_analytics(membership.organization_id, start_date=start_date, end_date=end_date)
    return Response(data)


# Template views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def vendor_template_list_create(request):
    """List CSV column mappings or save one for a vendor (one per vendor)"""
    membership = get_current_membership(request)
    organization = membership.organization

    if request.method == 'GET':
        queryset = VendorTemplate.objects.filter(organization=organization)
        vendor_id = request.query_params.get('vendor_id')
        if vendor_id:
            queryset = queryset.filter(vendor_id=vendor_id)
        return Response(VendorTemplateSerializer(queryset, many=True).data)

    if not can_manage_inventory(membership, 'edit'):
        return forbidden()

    existing = VendorTemplate.objects.filter(
        organization=organization, vendor_id=request.data.get('vendor_id')
    ).first()
    serializer = VendorTemplateSerializer(existing, data=request.data)
    if serializer.is_valid():
        template = serializer.save(organization=organization)
        return Response(
            VendorTemplateSerializer(template).data,
            status=status.HTTP_200_OK if existing else status.HTTP_201_CREATED,
        )
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# Import views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def vendor_import_list(request):
    """Invoice import history"""
    membership = get_current_membership(request)
    queryset = VendorImport.objects.filter(organization=membership.organization)
    vendor_id = request.query_params.get('vendor_id')
    if vendor_id:
        queryset = queryset.filter(vendor_id=vendor_id)
    return Response(VendorImportSerializer(queryset[:100], many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
@parser_classes([MultiPartParser, FormParser])
def vendor_import_upload_csv(request):
    """
    Parse an uploaded CSV invoice and return a preview.

    Nothing is written; the client confirms with the import endpoint.
    """
    membership = get_current_membership(request)
    if not can_manage_inventory(membership, 'edit'):
        return forbidden()

    upload = request.FILES.get('file')
    vendor_id = request.data.get('vendor_id', '')
    if not upload:
        return Response({'error': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)
    if upload.size > settings.MAX_INVOICE_UPLOAD_BYTES:
        return Response({'error': 'File is too large'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        text = upload.read().decode('utf-8-sig')
    except UnicodeDecodeError:
        return Response({'error': 'File must be UTF-8 encoded text'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        parsed = parse_invoice_csv(text)
    except CSVImportError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    detected_date = detect_date_from_filename(upload.name)
    template = None
    if vendor_id:
        template = VendorTemplate.objects.filter(organization=membership.organization, vendor_id=vendor_id).first()

    items = map_rows(parsed['rows'], template.column_mapping) if template else None
    return Response({
        'file_name': upload.name,
        'vendor_id': vendor_id,
        'delimiter': parsed['delimiter'],
        'headers': parsed['headers'],
        'row_count': len(parsed['rows']),
        'rows': parsed['rows'][:PREVIEW_ROWS],
        'detected_date': detected_date.isoformat() if detected_date else None,
        'has_template': template is not None,
        'items': [
            {**item, 'unit_price': str(item['unit_price'])} for item in items
        ] if items is not None else None,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
def vendor_import_apply(request):
    """Apply invoice items: price records for known codes, new items counted"""
    membership = get_current_membership(request)
    organization = membership.organization
    if not can_manage_inventory(membership, 'edit'):
        return forbidden()

    serializer = InvoiceImportSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    vendor_id = data['vendor_id']
    if data.get('items'):
        items = [dict(item) for item in data['items']]
    else:
        template = VendorTemplate.objects.filter(organization=organization, vendor_id=vendor_id).first()
        if template is None:
            return Response({'error': f'No CSV template configured for {vendor_id}'},
                            status=status.HTTP_400_BAD_REQUEST)
        rows = [{str(k).strip().lower(): (str(v).strip() if v is not None else '') for k, v in row.items()}
                for row in data['rows']]
        items = map_rows(rows, template.column_mapping)

    try:
        vendor_import = import_invoice_rows(
            organization,
            vendor_id,
            items,
            invoice_date=data.get('invoice_date'),
            user=request.user,
            file_name=data.get('file_name', ''),
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    log_activity(
        organization=organization,
        user=request.user,
        activity_type='invoice_imported',
        details={'vendor_id': vendor_id, 'name': vendor_import.file_name or vendor_id,
                 'items_count': vendor_import.items_count,
                 'price_changes_count': vendor_import.price_changes_count,
                 'new_items_count': vendor_import.new_items_count},
    )
    return Response(VendorImportSerializer(vendor_import).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOrganizationMember])
@parser_classes([MultiPartParser, FormParser])
def vendor_import_upload_file(request):
    """Store a PDF or photo invoice as a pending import"""
    membership = get_current_membership(request)
    if not can_manage_inventory(membership, 'edit'):
        return forbidden()

    serializer = InvoiceFileSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    upload = serializer.validated_data['file']
    if upload.size > settings.MAX_INVOICE_UPLOAD_BYTES:
        return Response({'error': 'File is too large'}, status=status.HTTP_400_BAD_REQUEST)

    vendor_import = VendorImport.objects.create(
        organization=membership.organization,
        vendor_id=serializer.validated_data['vendor_id'],
        import_type=serializer.validated_data['import_type'],
        file_name=upload.name,
        file=upload,
        invoice_date=serializer.validated_data.get('invoice_date') or detect_date_from_filename(upload.name),
        status='pending',
        created_by=request.user,
    )
    logger.info(f"Stored {vendor_import.import_type} invoice {upload.name} as pending import {vendor_import.id}")
    return Response(VendorImportSerializer(vendor_import).data, status=status.HTTP_201_CREATED)
