from rest_framework import serializers

from trainee.models import ScoreOverride


class ScoreOverrideRequestSerializer(serializers.Serializer):
    question_id = serializers.UUIDField()
    override_score = serializers.DecimalField(max_digits=8, decimal_places=2)
    reason = serializers.CharField(allow_blank=True, trim_whitespace=True)


class ScoreOverrideSerializer(serializers.ModelSerializer):
    quiz_attempt_id = serializers.UUIDField(read_only=True)
    question_id = serializers.UUIDField(read_only=True)
    created_by_id = serializers.UUIDField(read_only=True)
    updated_by_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ScoreOverride
        fields = [
            'id', 'quiz_attempt_id', 'question_id', 'original_score', 'override_score',
            'reason', 'created_by_id', 'updated_by_id', 'created_at', 'updated_at',
        ]
