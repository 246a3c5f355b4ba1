"""
Serializers for quiz evaluation input: short-answer options and submitted answers.
"""
from rest_framework import serializers


class ShortAnswerOptionsSerializer(serializers.Serializer):
    """
    Validates the JSON stored on a short-answer question.
    camelCase keys written by older clients are accepted; unknown keys are ignored.
    """
    CAMEL_CASE_KEYS = {
        'acceptedAnswers': 'accepted_answers',
        'caseSensitive': 'case_sensitive',
        'ignorePunctuation': 'ignore_punctuation',
        'matchType': 'match_type',
        'fuzzyThreshold': 'fuzzy_threshold',
        'requiredKeywords': 'required_keywords',
    }

    accepted_answers = serializers.ListField(child=serializers.CharField(allow_blank=True), default=list)
    case_sensitive = serializers.BooleanField(default=False)
    ignore_punctuation = serializers.BooleanField(default=False)
    match_type = serializers.ChoiceField(choices=['exact', 'contains'], default='exact')
    fuzzy_threshold = serializers.FloatField(min_value=0.0, max_value=1.0, allow_null=True, default=None)
    required_keywords = serializers.ListField(child=serializers.CharField(), default=list)

    def to_internal_value(self, data):
        data = {self.CAMEL_CASE_KEYS.get(key, key): value for key, value in data.items()}
        return super().to_internal_value(data)


class QuizSubmissionSerializer(serializers.Serializer):
    """
    answers is either {question_id: answer} or [{question_id, answer_text}];
    the scoring engine normalizes both shapes.
    """
    answers = serializers.JSONField()
    started_at = serializers.DateTimeField(required=False, allow_null=True, default=None)

    def validate_answers(self, value):
        if value is None:
            return {}
        if not isinstance(value, (dict, list)):
            raise serializers.ValidationError('answers must be an object or a list.')
        return value
