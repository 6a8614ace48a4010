import json
import logging
from django.http import StreamingHttpResponse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from backoffice.core.permissions import user_has_role, INVENTORY_WRITE_ROLES
from .orchestrator import LegacySyncOrchestrator, frame, ERROR

logger = logging.getLogger('backoffice.sync')


def encode_frame(payload):
    return f"data: {json.dumps(payload)}\n\n"


def event_stream(orchestrator):
    """Serialize orchestrator frames as server-sent events"""
    current, total = 0, 0
    try:
        for payload in orchestrator.run():
            current, total = payload['current'], payload['total']
            yield encode_frame(payload)
    except Exception as e:
        logger.error(f"Sync stream for site {orchestrator.site_code} failed: {str(e)}", exc_info=True)
        message = str(e) or 'Unknown error'
        errors = orchestrator.errors + [message]
        yield encode_frame(frame(ERROR, current, total, message, orchestrator.stats, errors))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def sync_stream(request):
    """Stream progress of a legacy inventory sync for one site"""
    if not user_has_role(request.user, INVENTORY_WRITE_ROLES):
        logger.warning(f"User {request.user.username} attempted a legacy sync without privileges")
        return Response({'success': False, 'error': 'Insufficient permissions'}, status=status.HTTP_403_FORBIDDEN)

    site_code = str(request.data.get('site_code') or request.data.get('siteCode') or '').strip()
    if not site_code:
        return Response({'success': False, 'error': 'Site code is required'}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"User {request.user.username} started legacy sync for site {site_code}")
    orchestrator = LegacySyncOrchestrator(site_code, user=request.user)
    response = StreamingHttpResponse(event_stream(orchestrator), content_type='text/event-stream')
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response
