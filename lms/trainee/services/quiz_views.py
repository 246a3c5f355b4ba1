"""
Quiz endpoints - status, start, submit, results and attempt review
"""
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from trainee.serializers.evaluation import QuizSubmissionSerializer
from trainee.services import quiz_scoring, score_overrides


@api_view(['GET'])
def quiz_status(request, quiz_id):
    """
    GET /api/trainee/quiz/{quiz_id}/status/
    Attempts used/remaining and the latest attempt with effective score
    """
    return Response(quiz_scoring.quiz_status(quiz_id, request.user))


@api_view(['POST'])
def start_quiz(request, quiz_id):
    """
    POST /api/trainee/quiz/{quiz_id}/start/
    Availability, attempt-limit and video-gate checks; returns questions without answers
    """
    return Response(quiz_scoring.start_quiz(quiz_id, request.user))


@api_view(['POST'])
def submit_quiz(request, quiz_id):
    """
    POST /api/trainee/quiz/{quiz_id}/submit/
    Body: { "answers": {question_id: answer} | [{question_id, answer_text}], "started_at": iso8601? }
    """
    serializer = QuizSubmissionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    result = quiz_scoring.submit_attempt(
        quiz_id,
        request.user,
        serializer.validated_data['answers'],
        started_at=serializer.validated_data['started_at'],
    )
    return Response(result, status=status.HTTP_201_CREATED)


@api_view(['GET'])
def quiz_results(request, quiz_id):
    """GET /api/trainee/quiz/{quiz_id}/results/ - every attempt in the organization (admins)"""
    return Response(score_overrides.quiz_results(quiz_id, request.user))


@api_view(['GET'])
def attempt_review(request, attempt_id):
    """GET /api/trainee/attempts/{attempt_id}/"""
    return Response(score_overrides.attempt_review(attempt_id, request.user))
