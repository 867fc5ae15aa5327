#!/usr/bin/env python3
"""
Script para gerenciar as migrações do banco de dados com Alembic.
"""
import sys
from pathlib import Path

# Adicionar o diretório raiz ao path
root_dir = Path(__file__).parent
sys.path.insert(0, str(root_dir))

from alembic.config import Config
from alembic import command
from backoffice.core.config import settings


def get_alembic_config():
    """Obter a configuração do Alembic."""
    alembic_cfg = Config(str(root_dir / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    return alembic_cfg


def create_migration(message: str):
    """Criar nova migração a partir dos modelos."""
    alembic_cfg = get_alembic_config()
    command.revision(alembic_cfg, autogenerate=True, message=message)
    print(f"Migração criada: {message}")


def run_migrations():
    """Executar as migrações pendentes."""
    alembic_cfg = get_alembic_config()
    command.upgrade(alembic_cfg, "head")
    print("Migrações executadas com sucesso")


def rollback_migration():
    """Desfazer a última migração."""
    alembic_cfg = get_alembic_config()
    command.downgrade(alembic_cfg, "-1")
    print("Rollback executado com sucesso")


def show_history():
    alembic_cfg = get_alembic_config()
    command.history(alembic_cfg)


def show_current():
    alembic_cfg = get_alembic_config()
    command.current(alembic_cfg)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Uso:")
        print("  python migrate.py create 'mensagem'  # Criar migração")
        print("  python migrate.py upgrade             # Executar migrações")
        print("  python migrate.py downgrade           # Rollback")
        print("  python migrate.py history             # Ver histórico")
        print("  python migrate.py current             # Ver revisão atual")
        sys.exit(1)

    action = sys.argv[1]

    if action == "create":
        if len(sys.argv) < 3:
            print("Erro: informe uma mensagem para a migração")
            sys.exit(1)
        create_migration(sys.argv[2])
    elif action == "upgrade":
        run_migrations()
    elif action == "downgrade":
        rollback_migration()
    elif action == "history":
        show_history()
    elif action == "current":
        show_current()
    else:
        print(f"Ação desconhecida: {action}")
        sys.exit(1)
