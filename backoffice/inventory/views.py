import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from backoffice.core.permissions import user_has_role, INVENTORY_READ_ROLES, INVENTORY_WRITE_ROLES
from backoffice.core.utils import create_audit_log
from . import services
from .exceptions import (
    ValidationError, InsufficientStockError, NotFoundError, ConcurrentUpdateError,
)
from .filters import InventoryFilter, TransferFilter
from .models import Inventory, InventoryMovement
from .serializers import (
    InventorySerializer, InventoryMovementSerializer,
    StockAdjustmentRequestSerializer, StockTransferRequestSerializer, InventoryLevelsRequestSerializer,
    StockTransferHistorySerializer,
)

logger = logging.getLogger('backoffice.inventory')

INVENTORY_LIST_LIMIT = 500
MOVEMENT_HISTORY_LIMIT = 50
TRANSFER_HISTORY_LIMIT = 100


def _failure(message, http_status=status.HTTP_400_BAD_REQUEST):
    return Response({'success': False, 'error': message}, status=http_status)


def _forbidden():
    return _failure('Insufficient permissions', status.HTTP_403_FORBIDDEN)


def _first_error(errors):
    """Flatten serializer errors to one user-facing message"""
    for field, messages in errors.items():
        message = messages[0] if isinstance(messages, list) and messages else messages
        return f"{field}: {message}"
    return 'Invalid request'


def _stock_error_response(exc):
    if isinstance(exc, NotFoundError):
        return _failure(exc.message, status.HTTP_404_NOT_FOUND)
    if isinstance(exc, ConcurrentUpdateError):
        return _failure('Inventory was changed by another operation, please retry', status.HTTP_409_CONFLICT)
    return _failure(exc.message)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_list(request):
    """List inventory rows filtered by site, product, search or low_stock"""
    if not user_has_role(request.user, INVENTORY_READ_ROLES):
        return _forbidden()

    queryset = Inventory.objects.select_related('product', 'site').order_by('site__name', 'product__name')
    inventory_filter = InventoryFilter(request.query_params, queryset=queryset)
    if not inventory_filter.is_valid():
        return _failure(_first_error(inventory_filter.errors))

    rows = inventory_filter.qs[:INVENTORY_LIST_LIMIT]
    return Response({'success': True, 'data': InventorySerializer(rows, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_detail(request, pk):
    """Retrieve one inventory row"""
    if not user_has_role(request.user, INVENTORY_READ_ROLES):
        return _forbidden()

    inventory = Inventory.objects.select_related('product', 'site').filter(pk=pk).first()
    if inventory is None:
        return _failure('Inventory not found', status.HTTP_404_NOT_FOUND)
    return Response({'success': True, 'data': InventorySerializer(inventory).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_movements(request, pk):
    """Most recent movements of one inventory row, newest first"""
    inventory = Inventory.objects.filter(pk=pk).first()
    if inventory is None:
        return _failure('Inventory not found', status.HTTP_404_NOT_FOUND)

    movements = (
        InventoryMovement.objects
        .filter(inventory=inventory)
        .select_related('performed_by', 'from_site', 'to_site')
        .order_by('-created_at', '-id')[:MOVEMENT_HISTORY_LIMIT]
    )
    return Response({'success': True, 'data': InventoryMovementSerializer(movements, many=True).data})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def inventory_levels(request, pk):
    """Update min/max/reorder thresholds of one inventory row"""
    if not user_has_role(request.user, INVENTORY_WRITE_ROLES):
        logger.warning(f"User {request.user.username} attempted to change stock levels without privileges")
        return _forbidden()

    serializer = InventoryLevelsRequestSerializer(data=request.data, partial=True)
    if not serializer.is_valid():
        return _failure(_first_error(serializer.errors))

    try:
        inventory = services.update_inventory_levels(pk, user=request.user, **serializer.validated_data)
    except (ValidationError, NotFoundError) as e:
        logger.warning(f"Stock level update rejected for inventory {pk}: {e.message}")
        return _stock_error_response(e)
    except Exception as e:
        logger.error(f"Unexpected error updating stock levels for inventory {pk}: {str(e)}", exc_info=True)
        return _failure('Failed to update settings', status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(
        request=request,
        action='stock_levels',
        model_name='Inventory',
        object_id=str(inventory.id),
        object_name=inventory.product.name,
        object_reference=inventory.site.code,
        changes={field: str(value) if value is not None else None for field, value in serializer.validated_data.items()},
    )
    return Response({'success': True, 'data': InventorySerializer(inventory).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def stock_adjust(request):
    """Stock adjustment (IN/OUT) on one inventory row"""
    if not user_has_role(request.user, INVENTORY_WRITE_ROLES):
        logger.warning(f"User {request.user.username} attempted a stock adjustment without privileges")
        return _forbidden()

    serializer = StockAdjustmentRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return _failure(_first_error(serializer.errors))
    data = serializer.validated_data

    try:
        movement = services.adjust_stock(
            inventory_id=data['inventory_id'],
            adjustment_type=data['type'],
            quantity=data['quantity'],
            reason=data.get('reason'),
            reference=data.get('reference'),
            user=request.user,
        )
    except (ValidationError, InsufficientStockError, NotFoundError, ConcurrentUpdateError) as e:
        logger.warning(f"Stock adjustment rejected for inventory {data['inventory_id']}: {e.message}")
        return _stock_error_response(e)
    except Exception as e:
        logger.error(f"Unexpected error adjusting inventory {data['inventory_id']}: {str(e)}", exc_info=True)
        return _failure('Failed to adjust stock', status.HTTP_500_INTERNAL_SERVER_ERROR)

    inventory = movement.inventory
    create_audit_log(
        request=request,
        action='stock_adjust',
        model_name='Inventory',
        object_id=str(inventory.id),
        object_name=inventory.product.name,
        object_reference=inventory.product.barcode,
        changes={
            'type': data['type'].upper(),
            'quantity': str(data['quantity']),
            'reason': movement.reason,
            'quantity_before': str(movement.quantity_before),
            'quantity_after': str(movement.quantity_after),
        }
    )
    return Response({
        'success': True,
        'data': {
            'movement': InventoryMovementSerializer(movement).data,
            'inventory': InventorySerializer(inventory).data,
        }
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def stock_transfer(request):
    """Transfer stock of one product between two sites"""
    if not user_has_role(request.user, INVENTORY_WRITE_ROLES):
        logger.warning(f"User {request.user.username} attempted a stock transfer without privileges")
        return _forbidden()

    serializer = StockTransferRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return _failure(_first_error(serializer.errors))
    data = serializer.validated_data

    try:
        result = services.transfer_stock(
            product_id=data['product_id'],
            from_site_id=data['from_site_id'],
            to_site_id=data['to_site_id'],
            quantity=data['quantity'],
            notes=data.get('notes'),
            user=request.user,
        )
    except (ValidationError, InsufficientStockError, NotFoundError, ConcurrentUpdateError) as e:
        logger.warning(f"Stock transfer rejected for product {data['product_id']}: {e.message}")
        return _stock_error_response(e)
    except Exception as e:
        logger.error(f"Unexpected error transferring product {data['product_id']}: {str(e)}", exc_info=True)
        return _failure('Failed to process transfer', status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(
        request=request,
        action='stock_transfer',
        model_name='Inventory',
        object_id=str(result.outgoing.inventory_id),
        object_name=result.outgoing.inventory.product.name,
        object_reference=str(result.transfer_group),
        changes={
            'from_site_id': data['from_site_id'],
            'to_site_id': data['to_site_id'],
            'quantity': str(data['quantity']),
            'notes': data.get('notes') or '',
        }
    )
    return Response({
        'success': True,
        'data': {
            'transfer_group': str(result.transfer_group),
            'movements': InventoryMovementSerializer([result.outgoing, result.incoming], many=True).data,
        }
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transfer_history(request):
    """Recent transfers with both legs, newest first, filtered by site or product"""
    if not user_has_role(request.user, INVENTORY_READ_ROLES):
        return _forbidden()

    queryset = (
        InventoryMovement.objects
        .filter(movement_type=InventoryMovement.TRANSFER_OUT, transfer_group__isnull=False)
        .select_related('inventory__product', 'inventory__site', 'to_site', 'from_site', 'performed_by')
        .order_by('-created_at', '-id')
    )
    transfer_filter = TransferFilter(request.query_params, queryset=queryset)
    if not transfer_filter.is_valid():
        return _failure(_first_error(transfer_filter.errors))

    outgoing = list(transfer_filter.qs[:TRANSFER_HISTORY_LIMIT])
    incoming = InventoryMovement.objects.filter(
        movement_type=InventoryMovement.TRANSFER_IN,
        transfer_group__in=[movement.transfer_group for movement in outgoing],
    ).select_related('inventory', 'from_site', 'to_site', 'performed_by')

    serializer = StockTransferHistorySerializer(
        outgoing, many=True, context={'incoming': {movement.transfer_group: movement for movement in incoming}}
    )
    return Response({'success': True, 'data': serializer.data})
