"""initial: academias, usuários, turmas, aulas e presenças

Revision ID: 0001_initial
Revises:
Create Date: 2025-01-06 09:00:00
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels = None
depends_on = None

_ATIVA = sa.text("deleted_at IS NULL")


def upgrade() -> None:
    op.create_table(
        "academias",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("nome", sa.String(length=160), nullable=False),
        sa.Column("slug", sa.String(length=64), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_academias"),
    )
    op.create_index("ix_academias_slug", "academias", ["slug"], unique=True)

    op.create_table(
        "papeis",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("nome", sa.String(length=32), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_papeis"),
        sa.UniqueConstraint("nome", name="uq_papeis_nome"),
    )

    op.create_table(
        "usuarios",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("academia_id", sa.Integer(), nullable=False),
        sa.Column("nome_completo", sa.String(length=160), nullable=False),
        sa.Column("email", sa.String(length=160), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.ForeignKeyConstraint(["academia_id"], ["academias.id"], name="fk_usuarios_academia_id_academias"),
        sa.PrimaryKeyConstraint("id", name="pk_usuarios"),
    )
    op.create_index("ix_usuarios_academia_id", "usuarios", ["academia_id"])
    op.create_index("ix_usuarios_email", "usuarios", ["email"])

    op.create_table(
        "usuarios_papeis",
        sa.Column("usuario_id", sa.Integer(), nullable=False),
        sa.Column("papel_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuarios.id"], name="fk_usuarios_papeis_usuario_id_usuarios"),
        sa.ForeignKeyConstraint(["papel_id"], ["papeis.id"], name="fk_usuarios_papeis_papel_id_papeis"),
        sa.PrimaryKeyConstraint("usuario_id", "papel_id", name="pk_usuarios_papeis"),
        sa.UniqueConstraint("usuario_id", "papel_id", name="uq_usuario_papel"),
    )

    op.create_table(
        "matriculas",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("academia_id", sa.Integer(), nullable=False),
        sa.Column("usuario_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["academia_id"], ["academias.id"], name="fk_matriculas_academia_id_academias"),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuarios.id"], name="fk_matriculas_usuario_id_usuarios"),
        sa.PrimaryKeyConstraint("id", name="pk_matriculas"),
    )
    op.create_index("ix_matriculas_academia_id", "matriculas", ["academia_id"])
    op.create_index("ix_matriculas_usuario_id", "matriculas", ["usuario_id"])

    op.create_table(
        "tipos_treino",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("academia_id", sa.Integer(), nullable=False),
        sa.Column("nome", sa.String(length=80), nullable=False),
        sa.Column("cor_identificacao", sa.String(length=20), nullable=True),
        sa.ForeignKeyConstraint(["academia_id"], ["academias.id"], name="fk_tipos_treino_academia_id_academias"),
        sa.PrimaryKeyConstraint("id", name="pk_tipos_treino"),
    )
    op.create_index("ix_tipos_treino_academia_id", "tipos_treino", ["academia_id"])

    op.create_table(
        "turmas",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("academia_id", sa.Integer(), nullable=False),
        sa.Column("nome", sa.String(length=120), nullable=False),
        sa.Column("tipo_treino_id", sa.Integer(), nullable=False),
        sa.Column("instrutor_padrao_id", sa.Integer(), nullable=True),
        sa.Column("dias_semana", sa.JSON(), nullable=False),
        sa.Column("horario_padrao", sa.Time(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["academia_id"], ["academias.id"], name="fk_turmas_academia_id_academias"),
        sa.ForeignKeyConstraint(["tipo_treino_id"], ["tipos_treino.id"], name="fk_turmas_tipo_treino_id_tipos_treino"),
        sa.ForeignKeyConstraint(["instrutor_padrao_id"], ["usuarios.id"], name="fk_turmas_instrutor_padrao_id_usuarios"),
        sa.ForeignKeyConstraint(["deleted_by"], ["usuarios.id"], name="fk_turmas_deleted_by_usuarios"),
        sa.PrimaryKeyConstraint("id", name="pk_turmas"),
    )
    op.create_index("ix_turmas_academia_id", "turmas", ["academia_id"])

    op.create_table(
        "aulas",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("academia_id", sa.Integer(), nullable=False),
        sa.Column("turma_id", sa.Integer(), nullable=False),
        sa.Column("data_inicio", sa.DateTime(timezone=True), nullable=False),
        sa.Column("data_fim", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("qr_token", sa.String(length=128), nullable=True),
        sa.Column("qr_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("motivo_cancelamento", sa.String(length=200), nullable=True),
        sa.Column("observacao_cancelamento", sa.Text(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["academia_id"], ["academias.id"], name="fk_aulas_academia_id_academias"),
        sa.ForeignKeyConstraint(["turma_id"], ["turmas.id"], name="fk_aulas_turma_id_turmas"),
        sa.ForeignKeyConstraint(["deleted_by"], ["usuarios.id"], name="fk_aulas_deleted_by_usuarios"),
        sa.CheckConstraint("data_fim > data_inicio", name="ck_aulas_data_fim_maior_que_inicio"),
        sa.PrimaryKeyConstraint("id", name="pk_aulas"),
    )
    op.create_index("ix_aulas_academia_id", "aulas", ["academia_id"])
    op.create_index("ix_aulas_turma_id", "aulas", ["turma_id"])
    # uma aula ativa por turma/início; deletadas não contam
    op.create_index(
        "uq_aulas_turma_inicio_ativa",
        "aulas",
        ["turma_id", "academia_id", "data_inicio"],
        unique=True,
        postgresql_where=_ATIVA,
        sqlite_where=_ATIVA,
    )

    op.create_table(
        "presencas",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("academia_id", sa.Integer(), nullable=False),
        sa.Column("aula_id", sa.Integer(), nullable=False),
        sa.Column("aluno_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("origem", sa.String(length=20), nullable=False),
        sa.Column("criado_em", sa.DateTime(timezone=True), nullable=False),
        sa.Column("registrado_por", sa.Integer(), nullable=True),
        sa.Column("decidido_em", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decidido_por", sa.Integer(), nullable=True),
        sa.Column("decisao_observacao", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["academia_id"], ["academias.id"], name="fk_presencas_academia_id_academias"),
        sa.ForeignKeyConstraint(["aula_id"], ["aulas.id"], name="fk_presencas_aula_id_aulas"),
        sa.ForeignKeyConstraint(["aluno_id"], ["usuarios.id"], name="fk_presencas_aluno_id_usuarios"),
        sa.ForeignKeyConstraint(["registrado_por"], ["usuarios.id"], name="fk_presencas_registrado_por_usuarios"),
        sa.ForeignKeyConstraint(["decidido_por"], ["usuarios.id"], name="fk_presencas_decidido_por_usuarios"),
        sa.PrimaryKeyConstraint("id", name="pk_presencas"),
        sa.UniqueConstraint("aula_id", "aluno_id", "academia_id", name="uq_presenca_aula_aluno"),
    )
    op.create_index("ix_presencas_academia_id", "presencas", ["academia_id"])
    op.create_index("ix_presencas_aula_id", "presencas", ["aula_id"])
    op.create_index("ix_presencas_aluno_id", "presencas", ["aluno_id"])


def downgrade() -> None:
    op.drop_table("presencas")
    op.drop_index("uq_aulas_turma_inicio_ativa", table_name="aulas")
    op.drop_table("aulas")
    op.drop_table("turmas")
    op.drop_table("tipos_treino")
    op.drop_table("matriculas")
    op.drop_table("usuarios_papeis")
    op.drop_table("usuarios")
    op.drop_table("papeis")
    op.drop_index("ix_academias_slug", table_name="academias")
    op.drop_table("academias")
