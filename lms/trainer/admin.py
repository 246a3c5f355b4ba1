"""
Django admin configuration for training content.
Content is authored here; there is no authoring API.
"""
from django.contrib import admin

from .models import Course, Module, Quiz, Question


class ModuleInline(admin.TabularInline):
    model = Module
    extra = 0
    ordering = ('sequence_order',)


class QuestionInline(admin.StackedInline):
    model = Question
    extra = 0
    ordering = ('order',)


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ('title', 'status', 'organization_id', 'created_at')
    list_filter = ('status',)
    search_fields = ('title',)
    inlines = [ModuleInline]


@admin.register(Module)
class ModuleAdmin(admin.ModelAdmin):
    list_display = ('title', 'course', 'sequence_order', 'content_type', 'duration_minutes')
    list_filter = ('content_type',)


@admin.register(Quiz)
class QuizAdmin(admin.ModelAdmin):
    list_display = ('title', 'module', 'passing_score', 'max_attempts', 'time_limit_minutes')
    inlines = [QuestionInline]
