from django.contrib import admin

from .models import Profile, Assignment


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ('email', 'first_name', 'last_name', 'role', 'organization_id', 'status')
    list_filter = ('role', 'status')
    search_fields = ('email', 'first_name', 'last_name')


@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = ('assignment_type', 'content_title', 'assigned_to', 'status', 'completion_score', 'certificate_status', 'assigned_at')
    list_filter = ('assignment_type', 'status', 'certificate_status', 'priority')
    search_fields = ('content_title', 'assigned_to__email')
    raw_id_fields = ('assigned_to', 'assigned_by', 'verified_by')
