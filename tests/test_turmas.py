import datetime as dt

import pytest
from pydantic import ValidationError

from app.core.errors import Conflict, Forbidden, NotFound
from app.crud.turma import turma_crud
from app.schemas.turma import TurmaCreate, TurmaUpdate
from conftest import actor_for

UTC = dt.timezone.utc


def _payload(tipo_id, **extra):
    data = {"nome": "Turma A", "tipo_treino_id": tipo_id, "dias_semana": [3, 1, 1], "horario_padrao": "19:00"}
    data.update(extra)
    return TurmaCreate(**data)


def test_create_normalizes_weekdays(db, factory):
    academia = factory.academia()
    staff = factory.staff(academia)
    tipo = factory.tipo(academia)

    turma = turma_crud.create(db, actor_for(staff), _payload(tipo.id))

    assert turma.academia_id == academia.id
    assert turma.dias_semana == [1, 3]
    assert turma.horario_padrao == dt.time(19, 0)


def test_weekdays_out_of_range_are_rejected():
    with pytest.raises(ValidationError):
        TurmaCreate(nome="X", tipo_treino_id=1, dias_semana=[7], horario_padrao="19:00")
    with pytest.raises(ValidationError):
        TurmaCreate(nome="X", tipo_treino_id=1, dias_semana=[], horario_padrao="19:00")


def test_create_requires_staff(db, factory):
    academia = factory.academia()
    aluno = factory.user(academia)
    tipo = factory.tipo(academia)

    with pytest.raises(Forbidden):
        turma_crud.create(db, actor_for(aluno), _payload(tipo.id))


def test_create_rejects_tipo_from_other_academia(db, factory):
    academia, outra = factory.academia(), factory.academia()
    staff = factory.staff(academia)
    tipo_alheio = factory.tipo(outra)

    with pytest.raises(NotFound):
        turma_crud.create(db, actor_for(staff), _payload(tipo_alheio.id))


def test_instructor_must_be_staff_of_same_academia(db, factory):
    academia = factory.academia()
    staff = factory.staff(academia)
    aluno = factory.user(academia)
    tipo = factory.tipo(academia)

    with pytest.raises(NotFound):
        turma_crud.create(db, actor_for(staff), _payload(tipo.id, instrutor_padrao_id=aluno.id))

    professor = factory.staff(academia, role="PROFESSOR")
    turma = turma_crud.create(db, actor_for(staff), _payload(tipo.id, instrutor_padrao_id=professor.id))
    assert turma.instrutor_padrao_id == professor.id


def test_update_without_fields_returns_current(db, factory):
    academia = factory.academia()
    staff = factory.staff(academia)
    turma = factory.turma(academia)

    same = turma_crud.update(db, turma.id, actor_for(staff), TurmaUpdate())
    assert same.id == turma.id
    assert same.nome == "Turma A"

    renamed = turma_crud.update(db, turma.id, actor_for(staff), TurmaUpdate(nome="Turma B"))
    assert renamed.nome == "Turma B"


def test_get_from_other_academia_is_not_found(db, factory):
    academia, outra = factory.academia(), factory.academia()
    turma = factory.turma(outra)
    staff = factory.staff(academia)

    with pytest.raises(NotFound):
        turma_crud.get_active(db, turma.id, actor_for(staff))


def test_soft_delete_blocked_by_future_classes(db, factory):
    academia = factory.academia()
    staff = factory.staff(academia)
    turma = factory.turma(academia)
    factory.aula(turma, dt.datetime.now(UTC) + dt.timedelta(days=2))

    with pytest.raises(Conflict) as exc:
        turma_crud.soft_delete(db, turma.id, actor_for(staff))
    assert exc.value.code == "TURMA_COM_AULAS_FUTURAS"


def test_soft_delete_is_noop_when_already_deleted(db, factory):
    academia = factory.academia()
    staff = factory.staff(academia)
    turma = factory.turma(academia)
    factory.aula(turma, dt.datetime.now(UTC) - dt.timedelta(days=2))

    turma_crud.soft_delete(db, turma.id, actor_for(staff))
    first = turma.deleted_at
    assert first is not None

    turma_crud.soft_delete(db, turma.id, actor_for(staff))
    db.refresh(turma)
    assert turma.deleted_at == first


def test_list_hides_deleted_unless_staff_asks(db, factory):
    academia = factory.academia()
    staff = factory.staff(academia)
    aluno = factory.user(academia)
    ativa = factory.turma(academia, nome="Ativa")
    removida = factory.turma(academia, nome="Removida")
    turma_crud.soft_delete(db, removida.id, actor_for(staff))

    assert [t.id for t in turma_crud.list(db, actor_for(aluno))] == [ativa.id]
    assert [t.id for t in turma_crud.list(db, actor_for(staff), only_deleted=True)] == [removida.id]
    assert len(turma_crud.list(db, actor_for(staff), include_deleted=True)) == 2
    with pytest.raises(Forbidden):
        turma_crud.list(db, actor_for(aluno), include_deleted=True)


def test_restore_checks_name_collision(db, factory):
    academia = factory.academia()
    staff = factory.staff(academia)
    removida = factory.turma(academia, nome="Funcional")
    turma_crud.soft_delete(db, removida.id, actor_for(staff))
    factory.turma(academia, nome="funcional")

    with pytest.raises(Conflict) as exc:
        turma_crud.restore(db, removida.id, actor_for(staff))
    assert exc.value.code == "NOME_DUPLICADO"


def test_restore_requires_deleted(db, factory):
    academia = factory.academia()
    staff = factory.staff(academia)
    turma = factory.turma(academia)

    with pytest.raises(Conflict) as exc:
        turma_crud.restore(db, turma.id, actor_for(staff))
    assert exc.value.code == "NAO_DELETADO"

    turma_crud.soft_delete(db, turma.id, actor_for(staff))
    restored = turma_crud.restore(db, turma.id, actor_for(staff))
    assert restored.deleted_at is None
    assert restored.deleted_by is None
