"""initial schema

Revision ID: b7c1e2d3f4a5
Revises:
Create Date: 2026-10-17 00:00:00.000000

Creates the Globos y Fiesta schema from scratch:
- users, session_tokens, verification_codes: accounts and auth
- products: catalog with balloon / service attributes
- clients: registered clients with running purchase statistics
- sales, sale_items: point-of-sale records
- orders, order_items: storefront orders with tracking codes
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1e2d3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    # ============================================================================
    # users: staff and customer accounts
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('rol', sa.String(length=16), nullable=False),
        sa.Column('telefono', sa.String(length=15), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('email_verificado', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('perm_ventas', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('perm_productos', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('perm_clientes', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('perm_servicios', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('perm_reportes', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('perm_configuracion', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('ultimo_acceso', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_rol', 'users', ['rol'])

    # ============================================================================
    # session_tokens: opaque bearer sessions (hash only)
    # ============================================================================
    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=128), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # verification_codes: email verification / password recovery
    # ============================================================================
    op.create_table(
        'verification_codes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('codigo', sa.String(length=6), nullable=False),
        sa.Column('tipo', sa.String(length=16), nullable=False),
        sa.Column('usado', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('intentos', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_verification_codes_lookup', 'verification_codes', ['email', 'tipo', 'usado'])
    op.create_index('ix_verification_codes_expires_at', 'verification_codes', ['expires_at'])

    # ============================================================================
    # products
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(length=100), nullable=False),
        sa.Column('descripcion', sa.String(length=500), nullable=True),
        sa.Column('categoria', sa.String(length=32), nullable=False),
        sa.Column('precio_compra', sa.Numeric(12, 2), nullable=False),
        sa.Column('precio_venta', sa.Numeric(12, 2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('stock_minimo', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('imagen_url', sa.String(length=512), nullable=True),
        sa.Column('imagen_public_id', sa.String(length=255), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('tipo_globo', sa.String(length=32), nullable=True),
        sa.Column('color', sa.String(length=50), nullable=True),
        sa.Column('tamano', sa.String(length=16), nullable=True),
        sa.Column('tipo_servicio', sa.String(length=32), nullable=True),
        sa.Column('search_key', sa.String(length=700), nullable=False, server_default=''),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_nonneg'),
        sa.CheckConstraint('precio_compra >= 0', name='ck_products_cost_nonneg'),
        sa.CheckConstraint('precio_venta >= 0', name='ck_products_price_nonneg'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_categoria', 'products', ['categoria'])
    op.create_index('ix_products_stock', 'products', ['stock'])
    op.create_index('ix_products_activo', 'products', ['activo'])
    op.create_index('ix_products_search_key', 'products', ['search_key'])
    op.create_index('ix_products_categoria_activo', 'products', ['categoria', 'activo'])

    # ============================================================================
    # clients
    # ============================================================================
    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(length=100), nullable=False),
        sa.Column('telefono', sa.String(length=15), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('direccion', sa.String(length=200), nullable=True),
        sa.Column('tipo_cliente', sa.String(length=16), nullable=False, server_default='individual'),
        sa.Column('preferencias', sa.JSON(), nullable=False),
        sa.Column('notas', sa.String(length=500), nullable=True),
        sa.Column('total_compras', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('numero_ventas', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('promedio_compra', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('ultima_compra', sa.DateTime(timezone=True), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('fecha_registro', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    # Phone is unique among active clients only
    op.create_index(
        'uq_clients_active_phone', 'clients', ['telefono'], unique=True,
        sqlite_where=sa.text('activo = 1'), postgresql_where=sa.text('activo'),
    )
    op.create_index('ix_clients_tipo_activo', 'clients', ['tipo_cliente', 'activo'])
    op.create_index('ix_clients_activo', 'clients', ['activo'])

    # ============================================================================
    # sales / sale_items
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('numero', sa.String(length=32), nullable=False),
        sa.Column('cliente_id', sa.Integer(), nullable=True),
        sa.Column('datos_cliente', sa.JSON(), nullable=True),
        sa.Column('vendedor_id', sa.Integer(), nullable=False),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('descuento', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('metodo_pago', sa.String(length=16), nullable=False),
        sa.Column('estado', sa.String(length=16), nullable=False, server_default='completada'),
        sa.Column('tipo_venta', sa.String(length=16), nullable=False, server_default='directa'),
        sa.Column('servicios_realizados', sa.JSON(), nullable=False),
        sa.Column('notas', sa.Text(), nullable=True),
        sa.Column('fecha_venta', sa.DateTime(timezone=True), nullable=False),
        sa.Column('fecha_entrega', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['cliente_id'], ['clients.id'], ),
        sa.ForeignKeyConstraint(['vendedor_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('numero', name='uq_sales_numero'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_cliente_id', 'sales', ['cliente_id'])
    op.create_index('ix_sales_vendedor_id', 'sales', ['vendedor_id'])
    op.create_index('ix_sales_metodo_pago', 'sales', ['metodo_pago'])
    op.create_index('ix_sales_fecha_venta', 'sales', ['fecha_venta'])
    op.create_index('ix_sales_estado_fecha', 'sales', ['estado', 'fecha_venta'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('nombre', sa.String(length=100), nullable=False),
        sa.Column('cantidad', sa.Integer(), nullable=False),
        sa.Column('precio_unitario', sa.Numeric(12, 2), nullable=False),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('servicios_adicionales', sa.JSON(), nullable=False),
        sa.CheckConstraint('cantidad >= 1', name='ck_sale_items_qty_positive'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'])

    # ============================================================================
    # orders / order_items
    # ============================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('numero', sa.String(length=32), nullable=False),
        sa.Column('codigo_seguimiento', sa.String(length=6), nullable=False),
        sa.Column('cliente_nombre', sa.String(length=100), nullable=False),
        sa.Column('cliente_telefono', sa.String(length=15), nullable=False),
        sa.Column('cliente_email', sa.String(length=255), nullable=True),
        sa.Column('usuario_id', sa.Integer(), nullable=True),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('estado', sa.String(length=16), nullable=False, server_default='en-proceso'),
        sa.Column('notas_cliente', sa.Text(), nullable=True),
        sa.Column('notas_admin', sa.Text(), nullable=True),
        sa.Column('fecha_pedido', sa.DateTime(timezone=True), nullable=False),
        sa.Column('fecha_estado_actual', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['usuario_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('numero', name='uq_orders_numero'),
        sa.UniqueConstraint('codigo_seguimiento', name='uq_orders_tracking_code'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_orders_usuario_id', 'orders', ['usuario_id'])
    op.create_index('ix_orders_estado', 'orders', ['estado'])
    op.create_index('ix_orders_fecha_pedido', 'orders', ['fecha_pedido'])
    op.create_index('ix_orders_estado_fecha', 'orders', ['estado', 'fecha_pedido'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('nombre', sa.String(length=100), nullable=False),
        sa.Column('cantidad', sa.Integer(), nullable=False),
        sa.Column('precio_unitario', sa.Numeric(12, 2), nullable=False),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('imagen_url', sa.String(length=512), nullable=True),
        sa.CheckConstraint('cantidad >= 1', name='ck_order_items_qty_positive'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('clients')
    op.drop_table('products')
    op.drop_table('verification_codes')
    op.drop_table('session_tokens')
    op.drop_table('users')
