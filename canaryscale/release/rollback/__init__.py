from .rollback_manager import RollbackManager as RollbackManager
