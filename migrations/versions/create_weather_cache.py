"""Create stations, observations and settings tables.

Revision ID: c1a2v3o4k5e6
Revises:
Create Date: 2026-10-17
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "c1a2v3o4k5e6"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def upgrade() -> None:
    op.create_table(
        "stations",
        sa.Column("identifier", sa.String(16), primary_key=True),
        sa.Column("name", sa.String(100)),
        sa.Column("latitude", sa.Double(), nullable=False),
        sa.Column("longitude", sa.Double(), nullable=False),
        sa.Column("elevation", sa.Double()),
        sa.Column("has_metar", sa.Boolean()),
        sa.Column("has_taf", sa.Boolean()),
        sa.Column("fetched_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "observations",
        sa.Column("id", sa.Uuid(as_uuid=False), primary_key=True),
        sa.Column("type", sa.Enum("METAR", "TAF", name="observationtype"), nullable=False),
        sa.Column(
            "identifier",
            sa.String(16),
            sa.ForeignKey("stations.identifier", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("raw", sa.Text(), nullable=False),
        sa.Column("observed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cloud_height", sa.Integer()),
        sa.Column("visibility", sa.Integer()),
        sa.Column("wind_direction", sa.Integer()),
        sa.Column("wind_speed", sa.Integer()),
        sa.Column("wind_gust", sa.Integer()),
        sa.Column("temperature", sa.Integer()),
        sa.Column("dew_point", sa.Integer()),
        sa.Column("valid_from", sa.DateTime(timezone=True)),
        sa.Column("valid_to", sa.DateTime(timezone=True)),
        sa.Column("fetched_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint(
            "type", "identifier", "observed_at", name="uq_observations_type_station_time"
        ),
    )
    op.create_index("ix_observations_type", "observations", ["type"])
    op.create_index("ix_observations_identifier", "observations", ["identifier"])
    op.create_index("ix_observations_observed_at", "observations", ["observed_at"])

    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.JSON().with_variant(JSONB, "postgresql"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )


def downgrade() -> None:
    op.drop_table("settings")
    op.drop_index("ix_observations_observed_at", table_name="observations")
    op.drop_index("ix_observations_identifier", table_name="observations")
    op.drop_index("ix_observations_type", table_name="observations")
    op.drop_table("observations")
    op.drop_table("stations")
    sa.Enum(name="observationtype").drop(op.get_bind(), checkfirst=True)
