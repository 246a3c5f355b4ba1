"""
URL Configuration for Trainee API
Quiz scoring, score overrides, module progress and reconciliation
"""
from django.urls import path

from trainee.services.quiz_views import (
    quiz_status,
    start_quiz,
    submit_quiz,
    quiz_results,
    attempt_review,
)
from trainee.services.override_views import (
    attempt_effective_score,
    apply_override,
    remove_override,
)
from trainee.services.progress_views import (
    update_video_progress,
    quiz_access,
    course_progress,
    reconcile_course,
    reconcile_quiz_assignments,
)

urlpatterns = [
    # Quizzes
    path('quiz/<str:quiz_id>/status/', quiz_status, name='quiz-status'),
    path('quiz/<str:quiz_id>/start/', start_quiz, name='quiz-start'),
    path('quiz/<str:quiz_id>/submit/', submit_quiz, name='quiz-submit'),
    path('quiz/<str:quiz_id>/results/', quiz_results, name='quiz-results'),

    # Attempts and overrides
    path('attempts/<str:attempt_id>/', attempt_review, name='attempt-review'),
    path('attempts/<str:attempt_id>/effective-score/', attempt_effective_score, name='attempt-effective-score'),
    path('attempts/<str:attempt_id>/overrides/', apply_override, name='attempt-apply-override'),
    path('overrides/<str:override_id>/', remove_override, name='remove-override'),

    # Module progress and video gating
    path('modules/<str:module_id>/video-progress/', update_video_progress, name='module-video-progress'),
    path('modules/<str:module_id>/quiz-access/', quiz_access, name='module-quiz-access'),

    # Course progress and healing
    path('course/<str:course_id>/progress/', course_progress, name='course-progress'),
    path('course/<str:course_id>/reconcile/', reconcile_course, name='course-reconcile'),
    path('quiz-assignments/reconcile/', reconcile_quiz_assignments, name='quiz-assignments-reconcile'),
]
