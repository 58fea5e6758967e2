"""Create courier trust, insurance, tracking and proof-of-delivery tables

Revision ID: 001_create_trust_tables
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001_create_trust_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True)


def _created_at(name: str = 'created_at') -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    """Create all tables of the trust service."""
    # ==================== Couriers & deliveries ====================
    op.create_table(
        'couriers',
        _uuid_pk(),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('avatar_url', sa.String(500), nullable=True),
        sa.Column('is_identity_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('identity_verified_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    op.create_table(
        'deliveries',
        _uuid_pk(),
        sa.Column('courier_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('couriers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending',
                  comment='pending, picked_up, in_transit, delivered, failed, cancelled'),
        sa.Column('is_late', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('customer_rating', sa.Integer(), nullable=True,
                  comment='1-5 stars, null when the customer did not rate'),
        sa.Column('recipient_name', sa.String(200), nullable=True),
        sa.Column('recipient_phone', sa.String(20), nullable=True),
        sa.Column('pickup_address', sa.Text(), nullable=True),
        sa.Column('dropoff_address', sa.Text(), nullable=True),
        sa.Column('dropoff_latitude', sa.Float(), nullable=True),
        sa.Column('dropoff_longitude', sa.Float(), nullable=True),
        sa.Column('estimated_arrival', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index('ix_deliveries_courier_id', 'deliveries', ['courier_id'])
    op.create_index('ix_deliveries_status', 'deliveries', ['status'])

    op.create_table(
        'incidents',
        _uuid_pk(),
        sa.Column('courier_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('couriers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('delivery_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('deliveries.id', ondelete='SET NULL'), nullable=True),
        sa.Column('incident_type', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index('ix_incidents_courier_id', 'incidents', ['courier_id'])

    # ==================== Reliability ====================
    op.create_table(
        'courier_reliability_scores',
        sa.Column('courier_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('couriers.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('overall_score', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('trust_tier', sa.String(20), nullable=False, server_default='bronze',
                  comment='bronze, silver, gold, platinum, diamond'),
        sa.Column('delivery_success_rate', sa.Integer(), server_default='100'),
        sa.Column('on_time_rate', sa.Integer(), server_default='100'),
        sa.Column('customer_rating_avg', sa.Float(), server_default='5.0'),
        sa.Column('incident_rate', sa.Float(), server_default='0'),
        sa.Column('verification_bonus', sa.Integer(), server_default='0'),
        sa.Column('experience_bonus', sa.Integer(), server_default='0'),
        sa.Column('total_deliveries', sa.Integer(), server_default='0'),
        sa.Column('successful_deliveries', sa.Integer(), server_default='0'),
        sa.Column('failed_deliveries', sa.Integer(), server_default='0'),
        sa.Column('total_incidents', sa.Integer(), server_default='0'),
        sa.Column('total_reviews', sa.Integer(), server_default='0'),
        sa.Column('badges', sa.JSON(), nullable=False, server_default='[]'),
        _created_at('computed_at'),
    )
    op.create_index(
        'ix_courier_reliability_scores_computed_at',
        'courier_reliability_scores',
        ['computed_at']
    )

    op.create_table(
        'courier_badges',
        _uuid_pk(),
        sa.Column('courier_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('couriers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('badge_id', sa.String(50), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('icon', sa.String(10), nullable=True),
        _created_at('earned_at'),
        sa.UniqueConstraint('courier_id', 'badge_id', name='uq_courier_badge'),
    )
    op.create_index('ix_courier_badges_courier_id', 'courier_badges', ['courier_id'])

    # ==================== Insurance ====================
    op.create_table(
        'package_insurance_policies',
        _uuid_pk(),
        sa.Column('delivery_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('deliveries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('plan_tier', sa.String(20), nullable=False, comment='basic, standard, premium'),
        sa.Column('declared_value', sa.Integer(), nullable=False),
        sa.Column('premium_amount', sa.Integer(), nullable=False),
        sa.Column('coverage_amount', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at('activated_at'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        _created_at(),
    )
    op.create_index(
        'ix_package_insurance_policies_delivery_id',
        'package_insurance_policies',
        ['delivery_id']
    )

    op.create_table(
        'insurance_claims',
        _uuid_pk(),
        sa.Column('policy_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('package_insurance_policies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('delivery_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('deliveries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('filer_id', postgresql.UUID(as_uuid=True), nullable=False,
                  comment='Courier or sender who filed the claim'),
        sa.Column('claim_type', sa.String(20), nullable=False, comment='damage, loss, theft, delay'),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('evidence_urls', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('claimed_amount', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        _created_at(),
    )
    op.create_index('ix_insurance_claims_policy_id', 'insurance_claims', ['policy_id'])
    op.create_index('ix_insurance_claims_status', 'insurance_claims', ['status'])

    # ==================== Shareable tracking ====================
    op.create_table(
        'shared_tracking_links',
        _uuid_pk(),
        sa.Column('delivery_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('deliveries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('share_code', sa.String(10), nullable=False,
                  comment='6-char code from the unambiguous alphabet'),
        sa.Column('share_url', sa.String(500), nullable=False),
        sa.Column('show_driver_name', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('show_driver_phone', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('show_driver_photo', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('show_eta', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
        _created_at(),
    )
    op.create_index(
        'ix_shared_tracking_links_share_code',
        'shared_tracking_links',
        ['share_code'],
        unique=True
    )
    op.create_index('ix_shared_tracking_links_delivery_id', 'shared_tracking_links', ['delivery_id'])
    op.create_index('ix_shared_tracking_active', 'shared_tracking_links', ['is_active', 'expires_at'])

    op.create_table(
        'tracking_updates',
        _uuid_pk(),
        sa.Column('delivery_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('deliveries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('accuracy', sa.Float(), nullable=True),
        sa.Column('status', sa.String(50), nullable=True),
        sa.Column('eta_minutes', sa.Integer(), nullable=True),
        sa.Column('distance_remaining', sa.Float(), nullable=True, comment='Remaining distance in km'),
        _created_at(),
    )
    op.create_index(
        'ix_tracking_updates_delivery_time',
        'tracking_updates',
        ['delivery_id', 'created_at']
    )

    # ==================== Proof of delivery ====================
    op.create_table(
        'delivery_proof_artifacts',
        _uuid_pk(),
        sa.Column('delivery_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('deliveries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('courier_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('couriers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('photo_type', sa.String(20), nullable=False,
                  comment='package, recipient, signature, location'),
        sa.Column('photo_url', sa.String(500), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        _created_at('taken_at'),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('analysis', sa.JSON(), nullable=True, comment='Raw evidence-confidence payload'),
        _created_at(),
    )
    op.create_index('ix_delivery_proof_artifacts_delivery_id', 'delivery_proof_artifacts', ['delivery_id'])
    op.create_index('ix_delivery_proof_artifacts_courier_id', 'delivery_proof_artifacts', ['courier_id'])

    op.create_table(
        'delivery_signatures',
        _uuid_pk(),
        sa.Column('delivery_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('deliveries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('signature_data', sa.Text(), nullable=False,
                  comment='Data URL (base64 PNG) of the drawn signature'),
        sa.Column('signer_name', sa.String(100), nullable=False),
        sa.Column('signer_phone', sa.String(20), nullable=True),
        _created_at(),
    )
    op.create_index('ix_delivery_signatures_delivery_id', 'delivery_signatures', ['delivery_id'])

    op.create_table(
        'proof_submission_steps',
        _uuid_pk(),
        sa.Column('delivery_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('deliveries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('step', sa.String(20), nullable=False, comment='package, recipient, signature'),
        sa.Column('artifact_id', postgresql.UUID(as_uuid=True), nullable=False,
                  comment='delivery_proof_artifacts.id or delivery_signatures.id'),
        _created_at('completed_at'),
        sa.UniqueConstraint('delivery_id', 'step', name='uq_proof_submission_step'),
    )
    op.create_index('ix_proof_submission_steps_delivery_id', 'proof_submission_steps', ['delivery_id'])


def downgrade() -> None:
    """Drop all tables of the trust service."""
    op.drop_table('proof_submission_steps')
    op.drop_table('delivery_signatures')
    op.drop_table('delivery_proof_artifacts')
    op.drop_table('tracking_updates')
    op.drop_table('shared_tracking_links')
    op.drop_table('insurance_claims')
    op.drop_table('package_insurance_policies')
    op.drop_table('courier_badges')
    op.drop_table('courier_reliability_scores')
    op.drop_table('incidents')
    op.drop_table('deliveries')
    op.drop_table('couriers')
