from rest_framework import serializers

from .models import Course, Module, Quiz


class QuizSummarySerializer(serializers.ModelSerializer):
    question_count = serializers.SerializerMethodField()
    max_score = serializers.SerializerMethodField()

    class Meta:
        model = Quiz
        fields = ['id', 'title', 'passing_score', 'max_attempts', 'time_limit_minutes', 'question_count', 'max_score']

    def get_question_count(self, obj):
        return len(obj.questions.all())

    def get_max_score(self, obj):
        return sum(q.points for q in obj.questions.all())


class ModuleSerializer(serializers.ModelSerializer):
    quizzes = QuizSummarySerializer(many=True, read_only=True)
    requires_video = serializers.BooleanField(read_only=True)

    class Meta:
        model = Module
        fields = [
            'id', 'title', 'description', 'sequence_order', 'content_type',
            'duration_minutes', 'video_url', 'requires_video', 'quizzes',
        ]


class CourseDetailSerializer(serializers.ModelSerializer):
    modules = ModuleSerializer(many=True, read_only=True)

    class Meta:
        model = Course
        fields = ['id', 'title', 'description', 'status', 'organization_id', 'created_at', 'modules']
