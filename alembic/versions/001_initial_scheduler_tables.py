"""Initial scheduler tables

Revision ID: 001_initial_scheduler_tables
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_scheduler_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Create question, card, scheduler_settings and review_log tables.
    """
    op.create_table(
        'question',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('subject_id', sa.Integer(), nullable=False),
        sa.Column('subtopic_id', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
        sa.Column('question_text', sa.String(), nullable=False),
        sa.Column('option_a', sa.String(), nullable=False),
        sa.Column('option_b', sa.String(), nullable=False),
        sa.Column('option_c', sa.String(), nullable=False),
        sa.Column('option_d', sa.String(), nullable=False),
        sa.Column('correct_option', sa.String(length=1), nullable=False),
        sa.Column('explanation', sa.String(), nullable=True),
        sa.Column('difficulty', sa.String(), nullable=True),
        sa.Column('total_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('correct_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('accuracy_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('actual_average_time_seconds', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='question_pkey'),
        sa.CheckConstraint(
            "correct_option IN ('a', 'b', 'c', 'd')",
            name='question_correct_option_check'
        )
    )
    op.create_index(op.f('ix_question_subject_id'), 'question', ['subject_id'], unique=False)
    op.create_index(op.f('ix_question_subtopic_id'), 'question', ['subtopic_id'], unique=False)
    op.create_index(op.f('ix_question_year'), 'question', ['year'], unique=False)

    op.create_table(
        'card',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('card_type', sa.String(), nullable=False, server_default='new'),
        sa.Column('ease_factor', sa.Float(), nullable=False, server_default='2.5'),
        sa.Column('interval_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('repetitions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lapses', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('learning_step', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('due_date', sa.DateTime(), nullable=False),
        sa.Column('is_suspended', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_buried', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('buried_until', sa.DateTime(), nullable=True),
        sa.Column('is_leech', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('total_reviews', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('times_correct', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('consecutive_correct', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_time_seconds', sa.Float(), nullable=False, server_default='0'),
        sa.Column('average_time_seconds', sa.Float(), nullable=False, server_default='0'),
        sa.Column('first_review', sa.DateTime(), nullable=True),
        sa.Column('last_review', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['question_id'], ['question.id'], name='card_question_id_fkey'),
        sa.PrimaryKeyConstraint('id', name='card_pkey'),
        sa.UniqueConstraint('user_id', 'question_id', name='uq_card_user_question'),
        sa.CheckConstraint(
            "card_type IN ('new', 'learning', 'review', 'relearning')",
            name='card_card_type_check'
        ),
        sa.CheckConstraint(
            "ease_factor >= 1.3 AND ease_factor <= 2.5",
            name='card_ease_factor_check'
        )
    )
    op.create_index(op.f('ix_card_user_id'), 'card', ['user_id'], unique=False)
    op.create_index(op.f('ix_card_question_id'), 'card', ['question_id'], unique=False)
    op.create_index(op.f('ix_card_card_type'), 'card', ['card_type'], unique=False)
    op.create_index(op.f('ix_card_due_date'), 'card', ['due_date'], unique=False)

    op.create_table(
        'scheduler_settings',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('learning_steps', sa.JSON(), nullable=False),
        sa.Column('graduating_interval', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('easy_interval', sa.Integer(), nullable=False, server_default='4'),
        sa.Column('starting_ease', sa.Float(), nullable=False, server_default='2.5'),
        sa.Column('easy_bonus', sa.Float(), nullable=False, server_default='1.3'),
        sa.Column('interval_modifier', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('maximum_interval', sa.Integer(), nullable=False, server_default='36500'),
        sa.Column('hard_interval_multiplier', sa.Float(), nullable=False, server_default='1.2'),
        sa.Column('new_interval_percentage', sa.Float(), nullable=False, server_default='0'),
        sa.Column('minimum_interval', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('leech_threshold', sa.Integer(), nullable=False, server_default='8'),
        sa.Column('leech_action', sa.String(), nullable=False, server_default='suspend'),
        sa.Column('new_cards_per_day', sa.Integer(), nullable=False, server_default='20'),
        sa.Column('maximum_reviews_per_day', sa.Integer(), nullable=False, server_default='200'),
        sa.Column('show_new_cards_first', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('user_id', name='scheduler_settings_pkey'),
        sa.CheckConstraint(
            "leech_action IN ('suspend', 'tag', 'bury')",
            name='scheduler_settings_leech_action_check'
        )
    )

    op.create_table(
        'review_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('card_id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.String(), nullable=True),
        sa.Column('submission_id', sa.String(length=64), nullable=True),
        sa.Column('review_grade', sa.String(), nullable=False),
        sa.Column('selected_option', sa.String(), nullable=True),
        sa.Column('is_correct', sa.Boolean(), nullable=False),
        sa.Column('response_time_seconds', sa.Float(), nullable=True),
        sa.Column('card_type_before', sa.String(), nullable=False),
        sa.Column('interval_before', sa.Integer(), nullable=False),
        sa.Column('ease_factor_before', sa.Float(), nullable=False),
        sa.Column('repetitions_before', sa.Integer(), nullable=False),
        sa.Column('lapses_before', sa.Integer(), nullable=False),
        sa.Column('due_date_before', sa.DateTime(), nullable=False),
        sa.Column('card_type_after', sa.String(), nullable=False),
        sa.Column('interval_after', sa.Integer(), nullable=False),
        sa.Column('ease_factor_after', sa.Float(), nullable=False),
        sa.Column('repetitions_after', sa.Integer(), nullable=False),
        sa.Column('lapses_after', sa.Integer(), nullable=False),
        sa.Column('learning_step_after', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('due_date_after', sa.DateTime(), nullable=False),
        sa.Column('is_suspended_after', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_buried_after', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('buried_until_after', sa.DateTime(), nullable=True),
        sa.Column('next_review', sa.String(length=32), nullable=True),
        sa.Column('was_first_review', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('was_leech', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reviewed_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['card_id'], ['card.id'], name='review_log_card_id_fkey'),
        sa.PrimaryKeyConstraint('id', name='review_log_pkey'),
        sa.UniqueConstraint('user_id', 'submission_id', name='uq_review_log_user_submission'),
        sa.CheckConstraint(
            "review_grade IN ('again', 'hard', 'good', 'easy')",
            name='review_log_review_grade_check'
        )
    )
    op.create_index(op.f('ix_review_log_user_id'), 'review_log', ['user_id'], unique=False)
    op.create_index(op.f('ix_review_log_card_id'), 'review_log', ['card_id'], unique=False)
    op.create_index(op.f('ix_review_log_session_id'), 'review_log', ['session_id'], unique=False)
    op.create_index(op.f('ix_review_log_reviewed_at'), 'review_log', ['reviewed_at'], unique=False)


def downgrade() -> None:
    """
    Drop all scheduler tables.
    """
    op.drop_index(op.f('ix_review_log_reviewed_at'), table_name='review_log')
    op.drop_index(op.f('ix_review_log_session_id'), table_name='review_log')
    op.drop_index(op.f('ix_review_log_card_id'), table_name='review_log')
    op.drop_index(op.f('ix_review_log_user_id'), table_name='review_log')
    op.drop_table('review_log')

    op.drop_table('scheduler_settings')

    op.drop_index(op.f('ix_card_due_date'), table_name='card')
    op.drop_index(op.f('ix_card_card_type'), table_name='card')
    op.drop_index(op.f('ix_card_question_id'), table_name='card')
    op.drop_index(op.f('ix_card_user_id'), table_name='card')
    op.drop_table('card')

    op.drop_index(op.f('ix_question_year'), table_name='question')
    op.drop_index(op.f('ix_question_subtopic_id'), table_name='question')
    op.drop_index(op.f('ix_question_subject_id'), table_name='question')
    op.drop_table('question')
