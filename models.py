# models.py - Database Models
"""
Database models for the Schedule Upload service
Shift schedules, schedule exceptions (novedades) and the employee registry
"""

from flask_sqlalchemy import SQLAlchemy
from datetime import datetime
import enum

db = SQLAlchemy()


# Enums
class AreaType(enum.Enum):
    OPERACIONES = "Operaciones"
    LAVADO = "Lavado"
    MANTENIMIENTO = "Mantenimiento"
    REMANOFACTURA = "Remanofactura"
    SERVICIOS_GENERALES = "ServiciosGenerales"
    VIGILANTES = "Vigilantes"
    INFRAESTRUCTURA = "Infraestructura"

    @classmethod
    def from_value(cls, value):
        """Look up an area by its id, case-insensitively; None when unknown"""
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().lower()
        for area in cls:
            if area.value.lower() == text:
                return area
        return None

    @property
    def details(self):
        return AREA_DETAILS[self]

    def to_dict(self):
        return {'id': self.value, **self.details}


AREA_DETAILS = {
    AreaType.OPERACIONES: {
        'name': 'Operaciones',
        'icon': 'Activity',
        'color': 'blue',
        'description': 'Gestión de operaciones diarias y monitoreo de actividades en tiempo real',
    },
    AreaType.LAVADO: {
        'name': 'Lavado',
        'icon': 'Droplets',
        'color': 'cyan',
        'description': 'Control de procesos de lavado y gestión de recursos hídricos',
    },
    AreaType.MANTENIMIENTO: {
        'name': 'Mantenimiento',
        'icon': 'Wrench',
        'color': 'amber',
        'description': 'Mantenimiento preventivo y correctivo de equipos e instalaciones',
    },
    AreaType.REMANOFACTURA: {
        'name': 'Remanofactura',
        'icon': 'Recycle',
        'color': 'green',
        'description': 'Procesos de remanufactura, reciclaje y gestión sostenible de recursos',
    },
    AreaType.SERVICIOS_GENERALES: {
        'name': 'Servicios Generales',
        'icon': 'Building2',
        'color': 'purple',
        'description': 'Administración de servicios generales y gestión de instalaciones',
    },
    AreaType.VIGILANTES: {
        'name': 'Vigilantes',
        'icon': 'Shield',
        'color': 'red',
        'description': 'Control de seguridad, vigilancia y protección de activos',
    },
    AreaType.INFRAESTRUCTURA: {
        'name': 'Infraestructura',
        'icon': 'HardHat',
        'color': 'slate',
        'description': 'Obras, adecuaciones y mantenimiento de la infraestructura física',
    },
}

# ==========================================
# SCHEDULE MODELS
# ==========================================

class ProgramacionTurno(db.Model):
    """One scheduled shift for one employee on one date"""
    __tablename__ = 'programacion_turnos'

    id = db.Column(db.Integer, primary_key=True)
    CEDULA = db.Column(db.BigInteger, nullable=False)
    Fecha_programacion = db.Column(db.Date, nullable=False)
    Horario_programacion = db.Column(db.String(50), nullable=False)
    Area = db.Column(db.String(50), nullable=False)
    Tiempo_a_descontar = db.Column(db.Float, default=0)
    Quincena = db.Column(db.String(20), nullable=False)
    clasificacion = db.Column(db.String(100))
    fecha_consulta = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('CEDULA', 'Fecha_programacion', 'Area', name='uq_cedula_fecha_area'),
    )

    def __repr__(self):
        return f'<ProgramacionTurno {self.CEDULA} {self.Fecha_programacion} {self.Area}>'


class NovedadProgramacion(db.Model):
    """Schedule exception: absence, leave, unplanned overtime..."""
    __tablename__ = 'novedades_programacion_empleados'

    id = db.Column(db.Integer, primary_key=True)
    FECHA_PROGRAMACION = db.Column(db.Date, nullable=False)
    CEDULA = db.Column(db.BigInteger, nullable=False)
    TIPO_NOVEDAD = db.Column(db.Text, nullable=False)
    FECHA_HORA_EXTRA = db.Column(db.Date)
    HORA_INICIO_FIN = db.Column(db.Text)
    MOTIVO = db.Column(db.Text)
    CEDULA_AUTORIZA = db.Column(db.BigInteger)
    AREA = db.Column(db.Text, nullable=False)
    QUINCENA = db.Column(db.Text, nullable=False)
    TIEMPO_DESCONTAR = db.Column(db.Float)
    FECHA_CONSULTA = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<NovedadProgramacion {self.CEDULA} {self.FECHA_PROGRAMACION} {self.TIPO_NOVEDAD}>'


# ==========================================
# EMPLOYEE REGISTRY
# ==========================================

class PersonaValida(db.Model):
    """Employee registry maintained by HR, read-only for this service"""
    __bind_key__ = 'registry'
    __tablename__ = 'personas_validas'

    id = db.Column(db.Integer, primary_key=True)
    F200_NIT = db.Column(db.String(30), nullable=False, index=True)
    nombre = db.Column(db.String(150))

    def __repr__(self):
        return f'<PersonaValida {self.F200_NIT}>'
