"""
Score override endpoints (admins, managers, superadmins)
"""
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from trainee.serializers.overrides import ScoreOverrideRequestSerializer, ScoreOverrideSerializer
from trainee.services import score_overrides


@api_view(['GET'])
def attempt_effective_score(request, attempt_id):
    """GET /api/trainee/attempts/{attempt_id}/effective-score/"""
    attempt = score_overrides.attempt_for_actor(attempt_id, request.user)
    return Response(score_overrides.effective_score(attempt))


@api_view(['POST'])
def apply_override(request, attempt_id):
    """
    POST /api/trainee/attempts/{attempt_id}/overrides/
    Body: { "question_id": uuid, "override_score": number, "reason": str }
    Creates the override (201) or updates the existing one for that question (200).
    """
    serializer = ScoreOverrideRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    override, created = score_overrides.apply_override(
        attempt_id,
        serializer.validated_data['question_id'],
        serializer.validated_data['override_score'],
        serializer.validated_data['reason'],
        request.user,
    )
    attempt = score_overrides.get_attempt(attempt_id)
    return Response(
        {
            'override': ScoreOverrideSerializer(override).data,
            'effective_score': score_overrides.effective_score(attempt),
        },
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(['DELETE'])
def remove_override(request, override_id):
    """DELETE /api/trainee/overrides/{override_id}/ - question reverts to its automatic score"""
    attempt = score_overrides.remove_override(override_id, request.user)
    return Response({
        'deleted': True,
        'effective_score': score_overrides.effective_score(attempt),
    })
