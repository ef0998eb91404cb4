"""esquema inicial: catálogos, sierras, afilados y operaciones masivas

Revision ID: 20250601_01
Revises:
Create Date: 2025-06-01

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20250601_01'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('creado_en', sa.DateTime(), nullable=True),
        sa.Column('modificado_en', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'empresas',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('razon_social', sa.String(length=200), nullable=False, unique=True),
        sa.Column('rut', sa.String(length=20), nullable=False, unique=True),
        sa.Column('direccion', sa.String(length=500), nullable=True),
        sa.Column('telefono', sa.String(length=30), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_empresas_id', 'empresas', ['id'])

    op.create_table(
        'sucursales',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('empresa_id', sa.Integer(), sa.ForeignKey('empresas.id'), nullable=False),
        sa.Column('nombre', sa.String(length=200), nullable=False),
        sa.Column('direccion', sa.String(length=500), nullable=True),
        sa.Column('telefono', sa.String(length=30), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_sucursales_id', 'sucursales', ['id'])
    op.create_index('ix_sucursales_empresa_id', 'sucursales', ['empresa_id'])

    op.create_table(
        'usuarios',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=200), nullable=False),
        sa.Column('nombre_completo', sa.String(length=200), nullable=True),
        sa.Column('rol', sa.String(length=30), nullable=False),
        sa.Column('empresa_id', sa.Integer(), sa.ForeignKey('empresas.id'), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_usuarios_email', 'usuarios', ['email'], unique=True)
    op.create_index('ix_usuarios_empresa_id', 'usuarios', ['empresa_id'])

    for tabla in ('tipos_sierra', 'tipos_afilado'):
        op.create_table(
            tabla,
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('nombre', sa.String(length=100), nullable=False, unique=True),
            sa.Column('descripcion', sa.String(length=500), nullable=True),
            sa.Column('activo', sa.Boolean(), nullable=True),
            *_timestamps(),
        )

    estados = op.create_table(
        'estados_sierra',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column('nombre', sa.String(length=100), nullable=False),
        sa.Column('descripcion', sa.String(length=500), nullable=True),
    )
    op.bulk_insert(estados, [
        {'id': 1, 'nombre': 'Disponible'},
        {'id': 2, 'nombre': 'En proceso de afilado'},
        {'id': 3, 'nombre': 'Lista para retiro'},
        {'id': 4, 'nombre': 'Fuera de servicio'},
    ])

    op.create_table(
        'sierras',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('codigo_barras', sa.String(length=100), nullable=False),
        sa.Column('sucursal_id', sa.Integer(), sa.ForeignKey('sucursales.id'), nullable=False),
        sa.Column('tipo_sierra_id', sa.Integer(), sa.ForeignKey('tipos_sierra.id'), nullable=False),
        sa.Column('estado_id', sa.Integer(), sa.ForeignKey('estados_sierra.id'), nullable=False),
        sa.Column('activo', sa.Boolean(), nullable=True),
        sa.Column('fecha_registro', sa.Date(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_sierras_codigo_barras', 'sierras', ['codigo_barras'], unique=True)
    op.create_index('ix_sierras_sucursal_id', 'sierras', ['sucursal_id'])
    op.create_index('ix_sierras_tipo_sierra_id', 'sierras', ['tipo_sierra_id'])
    op.create_index('ix_sierras_estado_id', 'sierras', ['estado_id'])

    op.create_table(
        'afilados',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sierra_id', sa.Integer(), sa.ForeignKey('sierras.id'), nullable=False),
        sa.Column('tipo_afilado_id', sa.Integer(), sa.ForeignKey('tipos_afilado.id'), nullable=False),
        sa.Column('fecha_afilado', sa.Date(), nullable=False),
        sa.Column('fecha_salida', sa.Date(), nullable=True),
        sa.Column('observaciones', sa.Text(), nullable=True),
        sa.Column('estado', sa.Boolean(), nullable=True),
        sa.Column('usuario_id', sa.Integer(), sa.ForeignKey('usuarios.id'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_afilados_sierra_id', 'afilados', ['sierra_id'])
    op.create_index('ix_afilados_tipo_afilado_id', 'afilados', ['tipo_afilado_id'])
    op.create_index('ix_afilados_fecha_afilado', 'afilados', ['fecha_afilado'])
    op.create_index('ix_afilados_fecha_salida', 'afilados', ['fecha_salida'])

    op.create_table(
        'salidas_masivas',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sucursal_id', sa.Integer(), sa.ForeignKey('sucursales.id'), nullable=False),
        sa.Column('fecha_salida', sa.Date(), nullable=False),
        sa.Column('observaciones', sa.Text(), nullable=True),
        sa.Column('usuario_id', sa.Integer(), sa.ForeignKey('usuarios.id'), nullable=True),
        sa.Column('creado_en', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_salidas_masivas_sucursal_id', 'salidas_masivas', ['sucursal_id'])
    op.create_index('ix_salidas_masivas_fecha_salida', 'salidas_masivas', ['fecha_salida'])

    op.create_table(
        'salida_masiva_afilados',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('salida_masiva_id', sa.Integer(), sa.ForeignKey('salidas_masivas.id'), nullable=False),
        sa.Column('afilado_id', sa.Integer(), sa.ForeignKey('afilados.id'), nullable=False),
        sa.Column('estado_id_anterior', sa.Integer(), nullable=True),
        sa.UniqueConstraint('salida_masiva_id', 'afilado_id', name='uq_salida_masiva_afilado'),
    )
    op.create_index('ix_salida_masiva_afilados_salida_masiva_id', 'salida_masiva_afilados', ['salida_masiva_id'])
    op.create_index('ix_salida_masiva_afilados_afilado_id', 'salida_masiva_afilados', ['afilado_id'])

    op.create_table(
        'bajas_masivas',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('fecha_baja', sa.Date(), nullable=False),
        sa.Column('observaciones', sa.Text(), nullable=True),
        sa.Column('usuario_id', sa.Integer(), sa.ForeignKey('usuarios.id'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_bajas_masivas_fecha_baja', 'bajas_masivas', ['fecha_baja'])

    op.create_table(
        'baja_masiva_sierras',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('baja_masiva_id', sa.Integer(), sa.ForeignKey('bajas_masivas.id'), nullable=False),
        sa.Column('sierra_id', sa.Integer(), sa.ForeignKey('sierras.id'), nullable=False),
        sa.Column('estado_anterior', sa.Boolean(), nullable=False),
        sa.Column('estado_id_anterior', sa.Integer(), nullable=True),
        sa.UniqueConstraint('baja_masiva_id', 'sierra_id', name='uq_baja_masiva_sierra'),
    )
    op.create_index('ix_baja_masiva_sierras_baja_masiva_id', 'baja_masiva_sierras', ['baja_masiva_id'])
    op.create_index('ix_baja_masiva_sierras_sierra_id', 'baja_masiva_sierras', ['sierra_id'])

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('timestamp', sa.DateTime(), nullable=True),
        sa.Column('usuario_id', sa.Integer(), sa.ForeignKey('usuarios.id'), nullable=True),
        sa.Column('usuario_rol', sa.String(length=30), nullable=True),
        sa.Column('empresa_id', sa.Integer(), sa.ForeignKey('empresas.id'), nullable=True),
        sa.Column('module', sa.String(length=50), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('entity_type', sa.String(length=100), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('summary', sa.String(length=500), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
    )
    op.create_index('ix_audit_log_usuario_id', 'audit_log', ['usuario_id'])
    op.create_index('ix_audit_log_empresa_id', 'audit_log', ['empresa_id'])
    op.create_index('ix_audit_log_module', 'audit_log', ['module'])
    op.create_index('ix_audit_log_action', 'audit_log', ['action'])
    op.create_index('ix_audit_log_entity_id', 'audit_log', ['entity_id'])


def downgrade() -> None:
    for tabla in (
        'audit_log', 'baja_masiva_sierras', 'bajas_masivas', 'salida_masiva_afilados',
        'salidas_masivas', 'afilados', 'sierras', 'estados_sierra', 'tipos_afilado',
        'tipos_sierra', 'usuarios', 'sucursales', 'empresas',
    ):
        op.drop_table(tabla)
