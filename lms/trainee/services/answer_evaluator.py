"""
Answer Evaluator

Pure comparison of a learner's answer against a question's correct answer.
The same functions run at submission, in the override dialog and in
attempt review, so correctness never disagrees between those views.

- multiple_choice / true_false: exact match against the option text
- short_answer: normalized match against the correct answer and any
  accepted alternatives (see ShortAnswerOptions)
"""
from dataclasses import dataclass, field
import re

from lms.exceptions import ValidationError

_WHITESPACE = re.compile(r'\s+')


@dataclass(frozen=True)
class ShortAnswerOptions:
    """Matching rules for a short-answer question; defaults give plain normalized equality"""
    accepted_answers: tuple = ()
    case_sensitive: bool = False
    ignore_punctuation: bool = False
    match_type: str = 'exact'  # 'exact' | 'contains'
    fuzzy_threshold: float = None
    required_keywords: tuple = field(default=())

    @classmethod
    def from_raw(cls, raw):
        """Build from the JSON stored on the question (dict, choice list or nothing)"""
        if isinstance(raw, ShortAnswerOptions):
            return raw
        if not raw or not isinstance(raw, dict):
            return cls()
        from trainee.serializers.evaluation import ShortAnswerOptionsSerializer
        serializer = ShortAnswerOptionsSerializer(data=raw)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        return cls(
            accepted_answers=tuple(data['accepted_answers']),
            case_sensitive=data['case_sensitive'],
            ignore_punctuation=data['ignore_punctuation'],
            match_type=data['match_type'],
            fuzzy_threshold=data['fuzzy_threshold'],
            required_keywords=tuple(data['required_keywords']),
        )


def normalize(text, case_sensitive=False, ignore_punctuation=False):
    """Trim, collapse internal whitespace, lowercase unless case sensitive"""
    text = '' if text is None else str(text)
    if ignore_punctuation:
        text = ''.join(ch for ch in text if ch.isalnum() or ch.isspace())
    text = _WHITESPACE.sub(' ', text.strip())
    if not case_sensitive:
        text = text.lower()
    return text


def levenshtein(a, b):
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def similarity(a, b):
    """1.0 for identical strings, falling towards 0.0 with edit distance"""
    longer = max(len(a), len(b))
    if longer == 0:
        return 1.0
    return (longer - levenshtein(a, b)) / longer


# question type -> evaluator(user_answer, correct_answer, options) -> bool
EVALUATORS = {}


def register(*question_types):
    def decorator(func):
        for question_type in question_types:
            EVALUATORS[question_type] = func
        return func
    return decorator


@register('multiple_choice', 'true_false')
def evaluate_choice(user_answer, correct_answer, options=None):
    return user_answer == correct_answer


@register('short_answer')
def evaluate_short_answer(user_answer, correct_answer, options=None):
    opts = ShortAnswerOptions.from_raw(options)

    def norm(text):
        return normalize(text, opts.case_sensitive, opts.ignore_punctuation)

    given = norm(user_answer)
    if not given:
        return False

    candidates = [norm(correct_answer)] + [norm(a) for a in opts.accepted_answers]
    candidates = [c for c in candidates if c]

    if opts.required_keywords and not all(norm(k) in given for k in opts.required_keywords):
        return False

    for candidate in candidates:
        if given == candidate:
            return True
        if opts.match_type == 'contains' and (candidate in given or given in candidate):
            return True

    if opts.fuzzy_threshold is not None:
        return any(similarity(given, c) >= opts.fuzzy_threshold for c in candidates)
    return False


def evaluate(user_answer, correct_answer, question_type, options=None):
    try:
        evaluator = EVALUATORS[question_type]
    except KeyError:
        raise ValidationError(f'Unsupported question type: {question_type}')
    return evaluator(user_answer, correct_answer or '', options)


def score_question(question, user_answer):
    """(is_correct, points_awarded) for one question of a quiz"""
    is_correct = evaluate(user_answer, question.correct_answer, question.type, question.options)
    return is_correct, question.points if is_correct else 0
