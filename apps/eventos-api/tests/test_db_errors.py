from unittest.mock import Mock

import pytest
from sqlalchemy.exc import IntegrityError, ProgrammingError

from conftest import PgError, overlap_error
from eventos.database.errors import (
    CONFLICT_MESSAGE,
    PolicyRecursionError,
    ReservationConflictError,
    SetupRequiredError,
    classify_db_error,
    is_overlap_violation,
)
from eventos.database.repositories.base import BaseRepository
from eventos.services.perfil_service import PerfilService

pytestmark = pytest.mark.unit


def test_solapamiento_por_codigo():
    err = classify_db_error(overlap_error())
    assert isinstance(err, ReservationConflictError)
    assert err.status_code == 409
    assert err.message == CONFLICT_MESSAGE


def test_solapamiento_por_nombre_de_constraint():
    exc = IntegrityError("INSERT", {}, PgError('violates exclusion constraint "reservas_no_solape_excl"'))
    assert is_overlap_violation(exc)


def test_recursion_de_politicas():
    exc = ProgrammingError("SELECT", {}, PgError("infinite recursion detected in policy for relation perfiles", "42P17"))
    err = classify_db_error(exc)
    assert isinstance(err, PolicyRecursionError)
    body = err.to_dict()
    assert body["error"] == "RLS_RECURSION_ERROR"
    assert body["remediation"]


def test_tabla_perfiles_inexistente():
    exc = ProgrammingError("SELECT", {}, PgError('relation "perfiles" does not exist', "42P01"))
    err = classify_db_error(exc)
    assert isinstance(err, SetupRequiredError)
    assert err.status_code == 503
    assert err.to_dict()["error"] == "SETUP_REQUIRED"


def test_otros_errores_sin_cambios():
    exc = IntegrityError("INSERT", {}, PgError("duplicate key value", "23505"))
    assert classify_db_error(exc) is exc


def test_repositorio_traduce_conflicto_en_commit(mock_database):
    mock_database.commit.side_effect = overlap_error()
    repo = BaseRepository(mock_database)
    with pytest.raises(ReservationConflictError):
        repo.commit()
    mock_database.rollback.assert_called_once()


def test_perfil_service_propaga_remediacion(mock_database):
    mock_database.scalars = Mock(
        side_effect=ProgrammingError("SELECT", {}, PgError("infinite recursion detected", "42P17"))
    )
    with pytest.raises(PolicyRecursionError):
        PerfilService(mock_database).obtener_perfil("u-1")
