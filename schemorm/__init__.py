"""schemorm: an ORM whose tables, columns and links come from the live database schema."""

from .catalog import IDENTITY_COLUMN, SchemaCatalog, get_catalog, reset_catalogs
from .connection import configure, connect, get_connection
from .entity import Column, Entity, Reference
from .expressions import Join, Where
from .field import BoolField, DateField, EntityField, Field, FloatField, IdentityField, IntField, StringField
from .registry import get_entity, get_entity_class, get_repository
from .relations import ManyToMany, OneToMany
from .repository import Repository
