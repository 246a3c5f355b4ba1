"""
Django admin configuration for learner progress models.
"""
from django.contrib import admin

from trainee.models import ModuleProgress, QuizAttempt, ScoreOverride


@admin.register(ModuleProgress)
class ModuleProgressAdmin(admin.ModelAdmin):
    list_display = ('user', 'course', 'module', 'status', 'video_progress_percentage', 'completion_source', 'completed_at')
    list_filter = ('status', 'completion_source')
    raw_id_fields = ('user', 'course', 'module')


class ScoreOverrideInline(admin.TabularInline):
    model = ScoreOverride
    extra = 0
    raw_id_fields = ('question', 'created_by', 'updated_by')


@admin.register(QuizAttempt)
class QuizAttemptAdmin(admin.ModelAdmin):
    list_display = ('quiz', 'user', 'attempt_number', 'score', 'max_score', 'passed', 'completed_at')
    list_filter = ('passed',)
    raw_id_fields = ('quiz', 'user')
    inlines = [ScoreOverrideInline]
