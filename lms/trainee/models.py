"""
Learner-side training state: module progress, quiz attempts and the
administrator score overrides layered on top of them.
"""
from django.db import models
from django.utils import timezone
import uuid

from lms_admin.models import Profile
from trainer.models import Course, Module, Quiz, Question


class ModuleProgress(models.Model):
    """One row per (user, course, module); created on first progress event, never deleted"""
    STATUS_NOT_STARTED = 'not_started'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CHOICES = [
        (STATUS_NOT_STARTED, 'Not Started'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
    ]
    SOURCE_CHOICES = [
        ('video', 'Video'),
        ('quiz', 'Quiz'),
        ('reconciliation', 'Reconciliation'),
        ('manual', 'Manual'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, db_column='progress_id')
    user = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name='module_progress', db_column='user_id')
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='module_progress', db_column='course_id')
    module = models.ForeignKey(Module, on_delete=models.CASCADE, related_name='progress', db_column='module_id')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_NOT_STARTED, db_column='status')
    progress_percentage = models.IntegerField(default=0, db_column='progress_percentage')
    video_progress_percentage = models.IntegerField(default=0, db_column='video_progress_percentage')
    video_watch_time_seconds = models.IntegerField(default=0, db_column='video_watch_time_seconds')
    video_completed_at = models.DateTimeField(blank=True, null=True, db_column='video_completed_at')
    completion_source = models.CharField(max_length=20, choices=SOURCE_CHOICES, blank=True, null=True, db_column='completion_source')
    started_at = models.DateTimeField(blank=True, null=True, db_column='started_at')
    completed_at = models.DateTimeField(blank=True, null=True, db_column='completed_at')
    last_accessed_at = models.DateTimeField(default=timezone.now, db_column='last_accessed_at')

    class Meta:
        db_table = 'module_progress'
        unique_together = [('user', 'course', 'module')]
        indexes = [
            models.Index(fields=['user', 'course']),
        ]

    @property
    def is_completed(self):
        return self.status == self.STATUS_COMPLETED

    def __str__(self):
        return f"{self.user_id} / {self.module_id}: {self.status}"


class QuizAttempt(models.Model):
    """
    One scored submission. attempt_number runs 1, 2, 3... per (quiz, user);
    the unique constraint turns a numbering race into a retryable conflict.

    answers holds one record per question of the quiz:
    {question_id, answer_text, is_correct, points_awarded, points_possible}
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, db_column='attempt_id')
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name='attempts', db_column='quiz_id')
    user = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name='quiz_attempts', db_column='user_id')
    attempt_number = models.PositiveIntegerField(db_column='attempt_number')
    answers = models.JSONField(default=list, db_column='answers')
    score = models.IntegerField(default=0, db_column='score')
    max_score = models.IntegerField(default=0, db_column='max_score')
    passed = models.BooleanField(default=False, db_column='passed')
    started_at = models.DateTimeField(default=timezone.now, db_column='started_at')
    completed_at = models.DateTimeField(blank=True, null=True, db_column='completed_at')
    time_spent_seconds = models.IntegerField(default=0, db_column='time_spent')

    class Meta:
        db_table = 'quiz_attempts'
        ordering = ['quiz', 'user', 'attempt_number']
        unique_together = [('quiz', 'user', 'attempt_number')]

    def answer_for(self, question_id):
        question_id = str(question_id)
        for record in self.answers:
            if str(record.get('question_id')) == question_id:
                return record
        return None

    def __str__(self):
        return f"Attempt {self.attempt_number} of {self.quiz_id} by {self.user_id}"


class ScoreOverride(models.Model):
    """Administrator replacement of one question's automatic score within one attempt"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, db_column='override_id')
    quiz_attempt = models.ForeignKey(QuizAttempt, on_delete=models.CASCADE, related_name='overrides', db_column='quiz_attempt_id')
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='score_overrides', db_column='question_id')
    original_score = models.DecimalField(max_digits=8, decimal_places=2, db_column='original_score')
    override_score = models.DecimalField(max_digits=8, decimal_places=2, db_column='override_score')
    reason = models.TextField(db_column='reason')
    created_by = models.ForeignKey(Profile, on_delete=models.SET_NULL, null=True, related_name='score_overrides', db_column='created_by')
    updated_by = models.ForeignKey(Profile, on_delete=models.SET_NULL, null=True, blank=True, related_name='+', db_column='updated_by')
    created_at = models.DateTimeField(auto_now_add=True, db_column='created_at')
    updated_at = models.DateTimeField(auto_now=True, db_column='updated_at')

    class Meta:
        db_table = 'quiz_score_overrides'
        unique_together = [('quiz_attempt', 'question')]

    @property
    def adjustment(self):
        return self.override_score - self.original_score

    def __str__(self):
        return f"{self.quiz_attempt_id}/{self.question_id}: {self.original_score} -> {self.override_score}"
