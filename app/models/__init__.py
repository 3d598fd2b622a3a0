# Carrega módulos para registrar tabelas no metadata:
from app.models.academia import Academia      # noqa: F401
from app.models.user_role import user_roles   # noqa: F401
from app.models.role import Role              # noqa: F401
from app.models.user import User              # noqa: F401
from app.models.matricula import Matricula    # noqa: F401
from app.models.tipo_treino import TipoTreino # noqa: F401
from app.models.turma import Turma            # noqa: F401
from app.models.aula import Aula              # noqa: F401
from app.models.presenca import Presenca      # noqa: F401
