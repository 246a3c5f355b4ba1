"""
Progress tracking endpoints for trainee
Video progress, quiz gating, course progress and on-demand healing
"""
import logging

from rest_framework.decorators import api_view
from rest_framework.response import Response

from lms.exceptions import NotFound
from lms_admin.models import Profile
from lms_admin.permissions import require_learner_access
from trainee.serializers.progress import (
    ModuleProgressSerializer, ReconcileRequestSerializer, VideoProgressSerializer,
)
from trainee.services import module_progress, reconciliation
from trainer.views import get_course

logger = logging.getLogger(__name__)


@api_view(['POST'])
def update_video_progress(request, module_id):
    """
    POST /api/trainee/modules/{module_id}/video-progress/
    Expects: { "percentage": 0-100 }
    """
    serializer = VideoProgressSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    progress = module_progress.update_video_progress(
        request.user, module_id, serializer.validated_data['percentage'],
    )
    module = progress.module
    return Response({
        'progress': ModuleProgressSerializer(progress).data,
        'can_start_quiz': module_progress.can_start_quiz(module, progress),
    })


@api_view(['GET'])
def quiz_access(request, module_id):
    """GET /api/trainee/modules/{module_id}/quiz-access/"""
    return Response(module_progress.quiz_access(request.user, module_id))


@api_view(['GET'])
def course_progress(request, course_id):
    """
    GET /api/trainee/course/{course_id}/progress/
    Heals missing completions first, as loading the course always has.
    """
    get_course(course_id, request.user)
    result = reconciliation.reconcile(request.user, course_id)
    data = module_progress.course_progress(request.user, course_id)
    data['reconciliation'] = result.as_dict()
    return Response(data)


def _target_learner(request):
    serializer = ReconcileRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    user_id = serializer.validated_data['user_id']
    if not user_id or user_id == request.user.id:
        return request.user
    try:
        learner = Profile.objects.get(id=user_id)
    except Profile.DoesNotExist:
        raise NotFound(f'User not found: {user_id}')
    require_learner_access(request.user, learner)
    return learner


@api_view(['POST'])
def reconcile_course(request, course_id):
    """
    POST /api/trainee/course/{course_id}/reconcile/
    Expects: { "user_id": uuid? } - admins may heal another learner of their organization
    """
    learner = _target_learner(request)
    get_course(course_id, request.user)
    result = reconciliation.reconcile(learner, course_id)
    logger.info('Reconcile requested by %s for user %s course %s', request.user.id, learner.id, course_id)
    return Response(result.as_dict())


@api_view(['POST'])
def reconcile_quiz_assignments(request):
    """
    POST /api/trainee/quiz-assignments/reconcile/
    Expects: { "user_id": uuid? }
    Completes open quiz assignments whose quiz the learner already passed.
    """
    learner = _target_learner(request)
    result = reconciliation.reconcile_quiz_assignments(learner)
    logger.info('Quiz assignment sync requested by %s for user %s', request.user.id, learner.id)
    return Response(result.as_dict())
