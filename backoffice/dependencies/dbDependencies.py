from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from backoffice.database.database import get_db

# One session per request, taken from the application's Database
db_dependency = Annotated[Session, Depends(get_db)]
