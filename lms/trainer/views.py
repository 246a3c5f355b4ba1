"""
Read-only course reference data for the presentation layer.
Authoring happens in the Django admin site.
"""
from django.db.models import Prefetch
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework.decorators import api_view
from rest_framework.response import Response

from lms.exceptions import NotFound
from lms_admin.permissions import same_organization
from .models import Course, Module, Quiz
from .serializers import CourseDetailSerializer


def get_course(course_id, actor=None):
    """Load a course with its modules in order; other organizations' courses do not exist for the actor"""
    qs = Course.objects.prefetch_related(
        Prefetch('modules', queryset=Module.objects.order_by('sequence_order').prefetch_related(
            Prefetch('quizzes', queryset=Quiz.objects.prefetch_related('questions')),
        )),
    )
    try:
        course = qs.get(id=course_id)
    except (Course.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFound(f'Course not found: {course_id}')
    if actor is not None and not same_organization(actor, course.organization_id):
        raise NotFound(f'Course not found: {course_id}')
    return course


@api_view(['GET'])
def course_detail(request, course_id):
    """
    GET /api/trainer/courses/{course_id}/
    Course with its ordered modules and their quizzes
    """
    course = get_course(course_id, request.user)
    return Response(CourseDetailSerializer(course).data)
