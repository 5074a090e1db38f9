"""initial quiz schema: account, quiz, question, answer_option

Revision ID: 3c9d2e7f1a60
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9d2e7f1a60'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'account' not in existing_tables:
        op.create_table(
            'account',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('coins', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('games_played', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('wins', sa.Integer(), nullable=False, server_default='0'),
        )
        op.create_index('ix_account_username', 'account', ['username'], unique=True)

    if 'quiz' not in existing_tables:
        op.create_table(
            'quiz',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('title', sa.String(length=128), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('creator_id', sa.Integer(), sa.ForeignKey('account.id'), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
        )

    if 'question' not in existing_tables:
        op.create_table(
            'question',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quiz.id'), nullable=False),
            sa.Column('text', sa.Text(), nullable=False),
            sa.Column('points', sa.Integer(), nullable=False, server_default='1000'),
            sa.Column('time_limit', sa.Integer(), nullable=False, server_default='20'),
            sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        )
        op.create_index('ix_question_quiz_id', 'question', ['quiz_id'])

    if 'answer_option' not in existing_tables:
        op.create_table(
            'answer_option',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('question_id', sa.Integer(), sa.ForeignKey('question.id'), nullable=False),
            sa.Column('text', sa.String(length=256), nullable=False),
            sa.Column('is_correct', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('option_index', sa.Integer(), nullable=False),
            sa.UniqueConstraint('question_id', 'option_index', name='uq_answer_option_index'),
        )
        op.create_index('ix_answer_option_question_id', 'answer_option', ['question_id'])


def downgrade():
    op.drop_index('ix_answer_option_question_id', table_name='answer_option')
    op.drop_table('answer_option')
    op.drop_index('ix_question_quiz_id', table_name='question')
    op.drop_table('question')
    op.drop_table('quiz')
    op.drop_index('ix_account_username', table_name='account')
    op.drop_table('account')
