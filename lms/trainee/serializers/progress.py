"""
Serializers for module progress and reconciliation requests.
"""
from rest_framework import serializers

from trainee.models import ModuleProgress


class VideoProgressSerializer(serializers.Serializer):
    # range is clamped by the tracker, not rejected
    percentage = serializers.FloatField()


class ModuleProgressSerializer(serializers.ModelSerializer):
    user_id = serializers.UUIDField(read_only=True)
    course_id = serializers.UUIDField(read_only=True)
    module_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ModuleProgress
        fields = [
            'id', 'user_id', 'course_id', 'module_id', 'status',
            'progress_percentage', 'video_progress_percentage', 'video_watch_time_seconds',
            'video_completed_at', 'completion_source', 'started_at', 'completed_at', 'last_accessed_at',
        ]
        read_only_fields = fields


class ReconcileRequestSerializer(serializers.Serializer):
    user_id = serializers.UUIDField(required=False, allow_null=True, default=None)
