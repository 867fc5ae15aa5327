from typing import Annotated

from fastapi import Depends

from backoffice.modules.auth.dependencies import AuthDependencies, get_auth_context
from backoffice.modules.auth.schemas import AuthContext

# Authenticated principal; master users may not have a company selected
auth_dependency = Annotated[AuthContext, Depends(get_auth_context)]

# Authenticated principal bound to a company
tenant_dependency = Annotated[AuthContext, Depends(AuthDependencies.require_tenant())]
