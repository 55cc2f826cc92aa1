"""Project repository."""


from purchasing.domain.project import Project
from purchasing.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    model = Project

    async def get_by_name(self, project_name: str) -> Project | None:
        return await self.get_by(project_name=project_name)
