from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from livequiz import db
from livequiz.errors import QuizNotFound, ValidationError
from livequiz.models import Quiz, Question, AnswerOption
from livequiz.services.games.store import validate_question


quizzes_bp = Blueprint('quizzes', __name__)


@quizzes_bp.route('', methods=['POST'])
def create_quiz():
    data = request.get_json(silent=True) or {}
    title = (data.get('title') or '').strip()
    if not title:
        raise ValidationError('Please enter a quiz title')
    questions = data.get('questions') or []
    if not isinstance(questions, list) or not questions:
        raise ValidationError('A quiz needs at least one question')
    time_limit = data.get('time_limit', 20)

    quiz = Quiz(
        title=title,
        description=(data.get('description') or '').strip(),
        creator_id=current_user.id if current_user.is_authenticated else None,
    )
    for position, q in enumerate(questions, start=1):
        if not isinstance(q, dict):
            raise ValidationError(f'Question {position} must be an object')
        raw_options = q.get('options') or []
        if not isinstance(raw_options, list):
            raise ValidationError(f'Question {position} options must be a list')
        # Blank options are dropped before indexing, like the editor does
        options = [o for o in raw_options if isinstance(o, dict) and (o.get('text') or '').strip()]
        triples = [(i, o['text'].strip(), bool(o.get('is_correct'))) for i, o in enumerate(options)]
        text = (q.get('text') or '').strip()
        points = q.get('points', 1000)
        question_time = q.get('time_limit', time_limit)
        validate_question(position, text, triples, points, question_time)

        question = Question(text=text, points=points, time_limit=question_time, order_index=position - 1)
        question.options = [
            AnswerOption(text=option_text, option_index=i, is_correct=is_correct)
            for i, option_text, is_correct in triples
        ]
        quiz.questions.append(question)

    db.session.add(quiz)
    db.session.commit()
    return jsonify(quiz.to_dict()), 201


@quizzes_bp.route('/<int:quiz_id>', methods=['GET'])
def get_quiz(quiz_id):
    quiz = db.session.get(Quiz, quiz_id)
    if quiz is None:
        raise QuizNotFound(f'Quiz {quiz_id} not found')
    return jsonify(quiz.to_dict())


@quizzes_bp.route('', methods=['GET'])
@login_required
def list_my_quizzes():
    quizzes = db.session.execute(
        db.select(Quiz)
        .filter_by(creator_id=current_user.id)
        .order_by(Quiz.created_at.desc(), Quiz.id.desc())
    ).scalars().all()
    return jsonify([quiz.to_dict(include_questions=False) for quiz in quizzes])
