"""
API endpoints для отдельных комментариев.

Комментарии задачи создаются и читаются через /tasks/{id}/comments,
здесь - операции по ID комментария:
- GET    /comments/{id}  - один комментарий
- DELETE /comments/{id}  - удалить (ответы на него остаются)
"""

from fastapi import APIRouter, Depends, Response, status

from ..services import CommentService
from .dependencies import get_comment_service
from .errors import NotFoundError
from .schemas import CommentResponse, ErrorResponse

router = APIRouter(prefix="/comments", tags=["comments"])


@router.get(
    "/{comment_id}",
    response_model=CommentResponse,
    summary="Получить комментарий по ID",
    responses={404: {"model": ErrorResponse, "description": "Комментарий не найден"}},
)
async def get_comment(
    comment_id: int,
    service: CommentService = Depends(get_comment_service),
) -> CommentResponse:
    comment = await service.get_comment(comment_id)
    if comment is None:
        raise NotFoundError("Comment", comment_id)
    return CommentResponse.model_validate(comment)


@router.delete(
    "/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить комментарий",
    description="Удаляет только этот комментарий. Ответы на него не удаляются.",
    responses={
        204: {"description": "Комментарий удалён"},
        404: {"model": ErrorResponse, "description": "Комментарий не найден"},
    },
)
async def delete_comment(
    comment_id: int,
    service: CommentService = Depends(get_comment_service),
) -> Response:
    if not await service.delete_comment(comment_id):
        raise NotFoundError("Comment", comment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
