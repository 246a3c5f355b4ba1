import uuid

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.management.base import BaseCommand, CommandError

from lms.exceptions import NotFound
from lms_admin.models import Assignment, Profile
from trainee.models import ModuleProgress, QuizAttempt
from trainee.services.reconciliation import reconcile, reconcile_quiz_assignments


class Command(BaseCommand):
    help = (
        'Heal module progress from committed quiz attempts, complete finished course '
        'assignments and sync standalone quiz assignments'
    )

    def add_arguments(self, parser):
        parser.add_argument('--user', help='Profile id or email; only heal this learner')
        parser.add_argument('--course', help='Course id; without --user heals every learner of the course')

    def handle(self, *args, **options):
        user_ref = options.get('user')
        course_id = options.get('course')
        if course_id:
            try:
                course_id = uuid.UUID(course_id)
            except ValueError:
                raise CommandError(f'Invalid course id: {course_id}')

        users = None
        if user_ref:
            users = [self._get_user(user_ref)]

        pairs = self._pairs(users, course_id)
        # quiz assignments are not tied to a course
        quiz_learners = [] if course_id else self._quiz_learners(users)
        if not pairs and not quiz_learners:
            self.stdout.write(self.style.WARNING('Nothing to reconcile.'))
            return

        if pairs:
            self._reconcile_courses(pairs)
        if quiz_learners:
            self._reconcile_quiz_assignments(quiz_learners)

    def _reconcile_courses(self, pairs):
        totals = {'healed': 0, 'failed': 0, 'assignments': 0}
        for user, cid in pairs:
            try:
                result = reconcile(user, cid)
            except NotFound as e:
                raise CommandError(str(e.detail))
            totals['healed'] += result.healed
            totals['failed'] += result.failed
            totals['assignments'] += int(result.assignment_completed)
            if result.healed or result.failed or result.assignment_completed:
                self.stdout.write(
                    f"  {user.email} / {cid}: healed={result.healed} failed={result.failed} "
                    f"assignment_completed={result.assignment_completed}"
                )

        style = self.style.SUCCESS if not totals['failed'] else self.style.WARNING
        self.stdout.write(style(
            f"Reconciled {len(pairs)} learner/course pair(s): healed={totals['healed']} "
            f"failed={totals['failed']} assignments_completed={totals['assignments']}"
        ))

    def _reconcile_quiz_assignments(self, learners):
        completed = failed = 0
        for user in learners:
            result = reconcile_quiz_assignments(user)
            completed += result.completed
            failed += result.failed
            if result.completed or result.failed:
                self.stdout.write(f"  {user.email}: quiz_assignments_completed={result.completed} failed={result.failed}")

        style = self.style.SUCCESS if not failed else self.style.WARNING
        self.stdout.write(style(
            f"Synced quiz assignments of {len(learners)} learner(s): completed={completed} failed={failed}"
        ))

    def _get_user(self, ref):
        lookup = {'email': ref} if '@' in ref else {'id': ref}
        try:
            return Profile.objects.get(**lookup)
        except (Profile.DoesNotExist, ValueError, DjangoValidationError):
            raise CommandError(f'User not found: {ref}')

    def _pairs(self, users, course_id):
        """(user, course_id) pairs with any progress or attempt in scope"""
        progress = ModuleProgress.objects.all()
        attempts = QuizAttempt.objects.filter(quiz__module__isnull=False)
        if users is not None:
            progress = progress.filter(user__in=users)
            attempts = attempts.filter(user__in=users)
        if course_id:
            progress = progress.filter(course_id=course_id)
            attempts = attempts.filter(quiz__module__course_id=course_id)

        keys = set(progress.values_list('user_id', 'course_id'))
        keys.update(attempts.values_list('user_id', 'quiz__module__course_id'))
        if users is not None and course_id:
            keys.add((users[0].id, course_id))

        profiles = {p.id: p for p in Profile.objects.filter(id__in={uid for uid, _ in keys})}
        return sorted(
            ((profiles[uid], cid) for uid, cid in keys if uid in profiles),
            key=lambda pair: (pair[0].email, str(pair[1])),
        )

    def _quiz_learners(self, users):
        """Learners with an open quiz assignment they have attempted"""
        open_quiz = Assignment.objects.filter(assignment_type='quiz').exclude(status=Assignment.STATUS_COMPLETED)
        if users is not None:
            open_quiz = open_quiz.filter(assigned_to__in=users)
        attempted = QuizAttempt.objects.filter(
            quiz__module__isnull=True,
            user_id__in=open_quiz.values('assigned_to_id'),
            quiz_id__in=open_quiz.values('content_id'),
        )
        return list(Profile.objects.filter(id__in=attempted.values('user_id')).order_by('email'))
