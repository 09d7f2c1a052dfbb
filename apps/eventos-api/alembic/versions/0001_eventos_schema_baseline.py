from alembic import op

revision = "0001_eventos_schema_baseline"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("""
        DO $$
        BEGIN
            BEGIN
                CREATE EXTENSION IF NOT EXISTS btree_gist;
            EXCEPTION
                WHEN insufficient_privilege THEN
                    NULL;
            END;
        END $$;
    """)

    op.execute("""
CREATE TABLE IF NOT EXISTS perfiles (
    user_id UUID NOT NULL,
    nombre VARCHAR(255) NOT NULL,
    rol VARCHAR(20) DEFAULT 'OPERADOR' NOT NULL,
    creado_en TIMESTAMP WITH TIME ZONE DEFAULT now(),
    PRIMARY KEY (user_id),
    CONSTRAINT perfiles_rol_check CHECK (rol IN ('ADMIN', 'OPERADOR'))
);
    """)

    op.execute("""
CREATE TABLE IF NOT EXISTS salones (
    id BIGSERIAL NOT NULL,
    nombre VARCHAR(255) NOT NULL,
    capacidad INTEGER NOT NULL,
    precio_base NUMERIC(12, 2) DEFAULT 0 NOT NULL,
    descripcion TEXT,
    creado_en TIMESTAMP WITH TIME ZONE DEFAULT now(),
    PRIMARY KEY (id),
    CONSTRAINT salones_capacidad_check CHECK (capacidad > 0),
    CONSTRAINT salones_precio_base_check CHECK (precio_base >= 0)
);
    """)

    op.execute("""
CREATE TABLE IF NOT EXISTS distribuciones (
    id BIGSERIAL NOT NULL,
    id_salon BIGINT NOT NULL REFERENCES salones(id) ON DELETE CASCADE,
    nombre VARCHAR(255) NOT NULL,
    capacidad INTEGER NOT NULL,
    creado_en TIMESTAMP WITH TIME ZONE DEFAULT now(),
    PRIMARY KEY (id),
    CONSTRAINT distribuciones_capacidad_check CHECK (capacidad > 0)
);
    """)

    op.execute("""
CREATE TABLE IF NOT EXISTS clientes (
    id BIGSERIAL NOT NULL,
    nombre VARCHAR(255) NOT NULL,
    empresa VARCHAR(255),
    telefono VARCHAR(50),
    email VARCHAR(255),
    creado_en TIMESTAMP WITH TIME ZONE DEFAULT now(),
    PRIMARY KEY (id)
);
    """)

    op.execute("""
CREATE TABLE IF NOT EXISTS categorias_servicios (
    id BIGSERIAL NOT NULL,
    nombre VARCHAR(255) NOT NULL,
    descripcion TEXT,
    creado_en TIMESTAMP WITH TIME ZONE DEFAULT now(),
    PRIMARY KEY (id)
);
    """)

    op.execute("""
CREATE TABLE IF NOT EXISTS servicios (
    id BIGSERIAL NOT NULL,
    id_categoria BIGINT NOT NULL REFERENCES categorias_servicios(id) ON DELETE CASCADE,
    nombre VARCHAR(255) NOT NULL,
    descripcion TEXT,
    precio NUMERIC(12, 2) DEFAULT 0 NOT NULL,
    creado_en TIMESTAMP WITH TIME ZONE DEFAULT now(),
    PRIMARY KEY (id),
    CONSTRAINT servicios_precio_check CHECK (precio >= 0)
);
    """)

    op.execute("""
CREATE TABLE IF NOT EXISTS reservas (
    id BIGSERIAL NOT NULL,
    id_cliente BIGINT REFERENCES clientes(id) ON DELETE SET NULL,
    id_salon BIGINT NOT NULL REFERENCES salones(id) ON DELETE RESTRICT,
    id_distribucion BIGINT REFERENCES distribuciones(id) ON DELETE SET NULL,
    fecha_inicio TIMESTAMP WITH TIME ZONE NOT NULL,
    fecha_fin TIMESTAMP WITH TIME ZONE NOT NULL,
    estado VARCHAR(20) DEFAULT 'Pendiente' NOT NULL,
    monto NUMERIC(12, 2) DEFAULT 0 NOT NULL,
    cantidad_personas INTEGER,
    observaciones TEXT,
    creado_por UUID,
    creado_en TIMESTAMP WITH TIME ZONE DEFAULT now(),
    actualizado_en TIMESTAMP WITH TIME ZONE,
    presupuesto_url TEXT,
    PRIMARY KEY (id),
    CONSTRAINT reservas_rango_check CHECK (fecha_fin > fecha_inicio),
    CONSTRAINT reservas_estado_check CHECK (estado IN ('Pendiente', 'Confirmado', 'Pagado', 'Cancelado'))
);
    """)

    op.execute("""
        DO $$
        BEGIN
            IF NOT EXISTS (
                SELECT 1 FROM pg_constraint WHERE conname = 'reservas_no_solape_excl'
            ) THEN
                ALTER TABLE reservas ADD CONSTRAINT reservas_no_solape_excl
                    EXCLUDE USING gist (
                        id_salon WITH =,
                        tstzrange(fecha_inicio, fecha_fin, '[)') WITH &&
                    ) WHERE (estado <> 'Cancelado');
            END IF;
        END $$;
    """)

    op.execute("""
CREATE TABLE IF NOT EXISTS reserva_servicios (
    id BIGSERIAL NOT NULL,
    id_reserva BIGINT NOT NULL REFERENCES reservas(id) ON DELETE CASCADE,
    id_servicio BIGINT NOT NULL REFERENCES servicios(id) ON DELETE CASCADE,
    cantidad INTEGER DEFAULT 1 NOT NULL,
    creado_en TIMESTAMP WITH TIME ZONE DEFAULT now(),
    PRIMARY KEY (id),
    CONSTRAINT reserva_servicios_cantidad_check CHECK (cantidad >= 1)
);
    """)

    op.execute("CREATE INDEX IF NOT EXISTS idx_distribuciones_id_salon ON distribuciones(id_salon);")
    op.execute("CREATE INDEX IF NOT EXISTS idx_clientes_email ON clientes(email);")
    op.execute("CREATE INDEX IF NOT EXISTS idx_clientes_nombre ON clientes(nombre);")
    op.execute("CREATE INDEX IF NOT EXISTS idx_servicios_id_categoria ON servicios(id_categoria);")
    op.execute("CREATE INDEX IF NOT EXISTS idx_reservas_id_salon ON reservas(id_salon);")
    op.execute("CREATE INDEX IF NOT EXISTS idx_reservas_fecha_inicio ON reservas(fecha_inicio);")
    op.execute("CREATE INDEX IF NOT EXISTS idx_reserva_servicios_id_reserva ON reserva_servicios(id_reserva);")


def downgrade() -> None:
    for table in (
        "reserva_servicios",
        "reservas",
        "servicios",
        "categorias_servicios",
        "clientes",
        "distribuciones",
        "salones",
        "perfiles",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE;")
