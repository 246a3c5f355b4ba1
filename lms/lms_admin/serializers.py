from rest_framework import serializers

from .models import Assignment, Profile


class ProfileSummarySerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Profile
        fields = ['id', 'email', 'full_name', 'role', 'organization_id']


class AssignmentSerializer(serializers.ModelSerializer):
    assigned_to = ProfileSummarySerializer(read_only=True)
    assigned_by_id = serializers.UUIDField(read_only=True)
    verified_by_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Assignment
        fields = [
            'id', 'assignment_type', 'assigned_to', 'assigned_by_id', 'organization_id',
            'content_id', 'content_title', 'priority', 'status',
            'assigned_at', 'due_date', 'started_at', 'completed_at', 'completion_score',
            'certificate_status', 'certificate_uploaded_at', 'verified_by_id', 'verified_at',
            'verification_notes', 'updated_at',
        ]
        read_only_fields = fields


class AssignmentCreateSerializer(serializers.Serializer):
    assignment_type = serializers.ChoiceField(choices=Assignment.TYPE_CHOICES)
    content_id = serializers.UUIDField()
    content_title = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    user_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    due_date = serializers.DateTimeField(required=False, allow_null=True, default=None)
    priority = serializers.ChoiceField(choices=Assignment.PRIORITY_CHOICES, default='medium')
    certificate_required = serializers.BooleanField(default=False)


class AssignmentListQuerySerializer(serializers.Serializer):
    user_id = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(choices=Assignment.STATUS_CHOICES, required=False)


class AssignmentCompleteSerializer(serializers.Serializer):
    score = serializers.IntegerField(min_value=0, max_value=100, required=False, allow_null=True, default=None)


class CertificateUploadSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class CertificateReviewSerializer(serializers.Serializer):
    approve = serializers.BooleanField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class BulkDeleteSerializer(serializers.Serializer):
    # plain strings so one malformed id is reported per item instead of failing the batch
    assignment_ids = serializers.ListField(child=serializers.CharField(), allow_empty=False)
