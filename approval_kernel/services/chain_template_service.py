"""
approval_kernel.services.chain_template_service -- Chain template store.

Responsibility:
    Create, look up and edit the administrator-configured approval chain
    for each document type.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - One template per document type (DB unique constraint; the insert is
      flushed and the IntegrityError is translated).
    - Levels are replaced as a whole and validated for contiguity first.
    - Template edits never modify existing approval requests; requests
      carry their own level snapshot.

Failure modes:
    - ChainTemplateNotFoundError when no (active) template exists.
    - ChainTemplateAlreadyExistsError on a duplicate document type.
    - InvalidChainConfigurationError on duplicate or non-contiguous levels.
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from approval_kernel.domain.approval import (
    ChainLevel,
    ChainTemplate,
    DocumentType,
    validate_chain_levels,
)
from approval_kernel.exceptions import (
    ChainTemplateAlreadyExistsError,
    ChainTemplateNotFoundError,
)
from approval_kernel.logging_config import get_logger
from approval_kernel.models.chain_template import ChainLevelModel, ChainTemplateModel
from approval_kernel.services.base import BaseService

logger = get_logger("services.chain_template")


class ChainTemplateService(BaseService[ChainTemplateModel]):
    """Store of per-document-type approval chains."""

    def get_active_template(self, document_type: DocumentType | str) -> ChainTemplate:
        """Return the active template for a document type.

        Raises:
            ChainTemplateNotFoundError: If none exists or it is inactive.
        """
        doc_type = DocumentType(document_type)
        model = self._find(doc_type)
        if model is None or not model.is_active:
            raise ChainTemplateNotFoundError(doc_type.value)
        return model.to_dto()

    def list_templates(self) -> list[ChainTemplate]:
        models = self.session.execute(
            select(ChainTemplateModel).order_by(ChainTemplateModel.document_type)
        ).scalars().all()
        return [model.to_dto() for model in models]

    def create_template(
        self,
        document_type: DocumentType | str,
        name: str,
        levels: Sequence[ChainLevel],
        description: str | None = None,
        is_active: bool = True,
    ) -> ChainTemplate:
        """Create the template for a document type.

        Raises:
            ChainTemplateAlreadyExistsError: If a template already exists.
            InvalidChainConfigurationError: If levels are malformed.
        """
        doc_type = DocumentType(document_type)
        ordered = validate_chain_levels(levels, doc_type.value)
        now = self.clock.now()

        model = ChainTemplateModel(
            document_type=doc_type.value,
            name=name,
            description=description,
            is_active=is_active,
            created_at=now,
            updated_at=now,
            levels=[ChainLevelModel.from_dto(level) for level in ordered],
        )
        self.session.add(model)
        try:
            self.session.flush()
        except IntegrityError:
            self.session.rollback()
            logger.warning(
                "chain_template_duplicate",
                extra={"document_type": doc_type.value},
            )
            raise ChainTemplateAlreadyExistsError(doc_type.value)

        logger.info(
            "chain_template_created",
            extra={
                "document_type": doc_type.value,
                "template_name": name,
                "level_count": len(ordered),
                "is_active": is_active,
            },
        )
        return model.to_dto()

    def replace_levels(
        self,
        document_type: DocumentType | str,
        levels: Sequence[ChainLevel],
        name: str | None = None,
        description: str | None = None,
        is_active: bool | None = None,
    ) -> ChainTemplate:
        """Replace every level of a template.

        Requests already started keep the levels they were created with.
        An empty list clears the template; starting an approval on it is
        then refused.
        ``is_active=None`` keeps the current flag.

        Raises:
            ChainTemplateNotFoundError: If no template exists (active or not).
            InvalidChainConfigurationError: If levels are malformed.
        """
        doc_type = DocumentType(document_type)
        ordered = validate_chain_levels(levels, doc_type.value)
        model = self._find(doc_type)
        if model is None:
            raise ChainTemplateNotFoundError(doc_type.value)

        previous_count = len(model.levels)
        model.levels.clear()
        # Old rows must be gone before rows with the same keys are inserted.
        self.session.flush()

        model.levels.extend(ChainLevelModel.from_dto(level) for level in ordered)
        if name is not None:
            model.name = name
        if description is not None:
            model.description = description
        if is_active is not None:
            model.is_active = is_active
        model.updated_at = self.clock.now()
        self.session.flush()

        logger.info(
            "chain_template_levels_replaced",
            extra={
                "document_type": doc_type.value,
                "previous_level_count": previous_count,
                "level_count": len(ordered),
            },
        )
        return model.to_dto()

    def set_active(self, document_type: DocumentType | str, is_active: bool) -> ChainTemplate:
        doc_type = DocumentType(document_type)
        model = self._find(doc_type)
        if model is None:
            raise ChainTemplateNotFoundError(doc_type.value)

        model.is_active = is_active
        model.updated_at = self.clock.now()
        self.session.flush()

        logger.info(
            "chain_template_activation_changed",
            extra={"document_type": doc_type.value, "is_active": is_active},
        )
        return model.to_dto()

    def _find(self, document_type: DocumentType) -> ChainTemplateModel | None:
        return self.session.execute(
            select(ChainTemplateModel).where(
                ChainTemplateModel.document_type == document_type.value,
            )
        ).scalar_one_or_none()
