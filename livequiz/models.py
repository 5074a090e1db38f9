from livequiz import db
from flask_login import UserMixin
from datetime import datetime


class Account(UserMixin, db.Model):
    __tablename__ = 'account'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    coins = db.Column(db.Integer, default=0, nullable=False)
    games_played = db.Column(db.Integer, default=0, nullable=False)
    total_points = db.Column(db.Integer, default=0, nullable=False)
    wins = db.Column(db.Integer, default=0, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'coins': self.coins,
            'games_played': self.games_played,
            'total_points': self.total_points,
            'wins': self.wins,
        }


class Quiz(db.Model):
    __tablename__ = 'quiz'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('account.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    questions = db.relationship('Question', back_populates='quiz', order_by='Question.order_index',
                                cascade='all, delete-orphan')

    def to_dict(self, include_questions=True):
        data = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'creator_id': self.creator_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'question_count': len(self.questions),
        }
        if include_questions:
            data['questions'] = [q.to_dict() for q in self.questions]
        return data


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quiz.id'), nullable=False, index=True)
    text = db.Column(db.Text, nullable=False)
    points = db.Column(db.Integer, default=1000, nullable=False)
    time_limit = db.Column(db.Integer, default=20, nullable=False)  # seconds
    order_index = db.Column(db.Integer, default=0, nullable=False)
    quiz = db.relationship('Quiz', back_populates='questions')
    options = db.relationship('AnswerOption', back_populates='question', order_by='AnswerOption.option_index',
                              cascade='all, delete-orphan')

    def to_dict(self):
        # Correct flags stay server side
        return {
            'id': self.id,
            'text': self.text,
            'points': self.points,
            'time_limit': self.time_limit,
            'order_index': self.order_index,
            'options': [o.text for o in self.options],
        }


class AnswerOption(db.Model):
    __tablename__ = 'answer_option'
    id = db.Column(db.Integer, primary_key=True)
    question_id = db.Column(db.Integer, db.ForeignKey('question.id'), nullable=False, index=True)
    text = db.Column(db.String(256), nullable=False)
    is_correct = db.Column(db.Boolean, default=False, nullable=False)
    option_index = db.Column(db.Integer, nullable=False)
    question = db.relationship('Question', back_populates='options')

    __table_args__ = (db.UniqueConstraint('question_id', 'option_index', name='uq_answer_option_index'),)
