"""Database schema initialization.

Contains all CREATE TABLE and CREATE INDEX statements and seed data for the
partsdesk database.

Called by database.init_db() on first start.
"""

# Tabs seeded on a fresh database: (name, tab_name, path, icon, sort_order)
DEFAULT_TABS = [
    ('Client Orders', 'client_orders', '/client-orders', 'bi-cart', 10),
    ('Clients', 'clients', '/clients', 'bi-people', 20),
    ('Suppliers', 'suppliers', '/suppliers', 'bi-truck', 30),
    ('Supplier Parts', 'supplier_parts', '/supplier-parts', 'bi-box-seam', 40),
    ('Original Parts', 'original_parts', '/original-parts', 'bi-gear', 50),
    ('TN VED Codes', 'tnved_codes', '/tnved-codes', 'bi-upc', 60),
    ('Logistics Routes', 'logistics_routes', '/logistics-routes', 'bi-signpost-split', 70),
    ('Users', 'users', '/users', 'bi-person-badge', 900),
    ('Roles', 'roles', '/roles', 'bi-shield-lock', 910),
    ('Role Permissions', 'role_permissions', '/role-permissions', 'bi-key', 920),
    ('Activity Logs', 'activity_logs', '/activity-logs', 'bi-journal-text', 930),
    ('Import', 'import', '/import', 'bi-upload', 940),
]


def create_schema(cursor):
    """Create all database tables, indexes, and seed data.

    Args:
        cursor: Database cursor from get_cursor(conn); the caller commits.
    """
    # Roles - slug is the lowercase, underscore-joined name
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS roles (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            slug TEXT NOT NULL UNIQUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS users (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            username TEXT NOT NULL UNIQUE,
            role_id INTEGER REFERENCES roles(id),
            is_active BOOLEAN DEFAULT TRUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # Tabs - navigable sections; tab_name and path are both lookup keys
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS tabs (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            tab_name TEXT NOT NULL UNIQUE,
            path TEXT NOT NULL UNIQUE,
            icon TEXT,
            tooltip TEXT,
            sort_order INTEGER DEFAULT 0,
            is_active BOOLEAN DEFAULT TRUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS role_permissions (
            id SERIAL PRIMARY KEY,
            role_id INTEGER NOT NULL REFERENCES roles(id) ON DELETE CASCADE,
            tab_id INTEGER NOT NULL REFERENCES tabs(id) ON DELETE CASCADE,
            can_view BOOLEAN DEFAULT TRUE,
            UNIQUE(role_id, tab_id)
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_role_permissions_tab ON role_permissions(tab_id)')

    # Reference data - only the columns order screens read
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS clients (
            id SERIAL PRIMARY KEY,
            company_name TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS original_parts (
            id SERIAL PRIMARY KEY,
            cat_number TEXT NOT NULL,
            description_en TEXT,
            description_ru TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS equipment_models (
            id SERIAL PRIMARY KEY,
            model_name TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS part_suppliers (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            public_code TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS logistics_routes (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            fixed_cost NUMERIC(15,2),
            eta_days INTEGER,
            currency TEXT,
            is_active BOOLEAN DEFAULT TRUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # Client orders
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS client_orders (
            id SERIAL PRIMARY KEY,
            order_number TEXT NOT NULL UNIQUE,
            client_id INTEGER NOT NULL REFERENCES clients(id),
            status TEXT NOT NULL DEFAULT 'draft',
            source TEXT DEFAULT 'manual',
            responsible_user_id INTEGER REFERENCES users(id),
            currency TEXT,
            incoterms TEXT,
            payment_terms TEXT,
            client_contact_name TEXT,
            client_contact_phone TEXT,
            client_contact_email TEXT,
            external_comment TEXT,
            internal_comment TEXT,
            requested_delivery_date DATE,
            created_by_user_id INTEGER REFERENCES users(id),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_client_orders_client ON client_orders(client_id)')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_client_orders_status ON client_orders(status)')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS client_order_items (
            id SERIAL PRIMARY KEY,
            order_id INTEGER NOT NULL REFERENCES client_orders(id) ON DELETE CASCADE,
            line_no INTEGER NOT NULL,
            original_part_id INTEGER REFERENCES original_parts(id),
            equipment_model_id INTEGER REFERENCES equipment_models(id),
            qty_requested NUMERIC(15,3) NOT NULL,
            qty_unit TEXT DEFAULT 'pcs',
            comment_client TEXT,
            comment_internal TEXT,
            status TEXT NOT NULL DEFAULT 'open',
            requested_delivery_date DATE,
            decision_offer_id INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(order_id, line_no)
        )
    ''')

    # Offers outlive their item row; order deletion removes them explicitly
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS client_order_offers (
            id SERIAL PRIMARY KEY,
            order_item_id INTEGER REFERENCES client_order_items(id) ON DELETE SET NULL,
            supplier_id INTEGER REFERENCES part_suppliers(id),
            supplier_part_id INTEGER,
            supplier_part_number TEXT,
            supplier_price NUMERIC(15,4),
            supplier_currency TEXT,
            fx_rate NUMERIC(15,6),
            logistics_cost NUMERIC(15,2),
            logistics_route_id INTEGER REFERENCES logistics_routes(id),
            lead_time_days NUMERIC(10,2),
            eta_days_effective NUMERIC(10,2),
            markup_pct NUMERIC(10,4),
            markup_abs NUMERIC(15,2),
            client_price NUMERIC(15,4),
            client_currency TEXT,
            status TEXT NOT NULL DEFAULT 'proposed',
            client_visible BOOLEAN DEFAULT FALSE,
            client_comment TEXT,
            internal_comment TEXT,
            created_by_user_id INTEGER REFERENCES users(id),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_offers_item ON client_order_offers(order_item_id)')

    # Event log - no foreign keys so events survive deletes
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS order_events (
            id SERIAL PRIMARY KEY,
            order_id INTEGER,
            order_item_id INTEGER,
            offer_id INTEGER,
            type TEXT NOT NULL,
            from_status TEXT,
            to_status TEXT,
            payload JSONB,
            created_by INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_order_events_order ON order_events(order_id, created_at)')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS activity_logs (
            id SERIAL PRIMARY KEY,
            user_id INTEGER,
            action TEXT NOT NULL,
            entity_type TEXT NOT NULL,
            entity_id INTEGER,
            field_changed TEXT,
            old_value TEXT,
            new_value TEXT,
            comment TEXT,
            client_id INTEGER,
            payload JSONB,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_activity_logs_entity ON activity_logs(entity_type, entity_id)')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS fx_rates (
            id SERIAL PRIMARY KEY,
            base_currency TEXT NOT NULL,
            quote_currency TEXT NOT NULL,
            rate NUMERIC(20,10) NOT NULL,
            as_of TIMESTAMPTZ NOT NULL,
            UNIQUE(base_currency, quote_currency)
        )
    ''')

    # ============== Seed data ==============

    cursor.execute('''
        INSERT INTO roles (id, name, slug) VALUES (1, 'Admin', 'admin')
        ON CONFLICT (id) DO NOTHING
    ''')
    cursor.execute("SELECT setval('roles_id_seq', (SELECT MAX(id) FROM roles))")

    for name, tab_name, path, icon, sort_order in DEFAULT_TABS:
        cursor.execute('''
            INSERT INTO tabs (name, tab_name, path, icon, sort_order)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (tab_name) DO NOTHING
        ''', (name, tab_name, path, icon, sort_order))
