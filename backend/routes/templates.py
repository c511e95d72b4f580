# routes/templates.py
import logging
from typing import Dict, Optional

from bson import ObjectId
from pymongo.errors import PyMongoError

from core.errors import TemplateOverrideError
from database import get_custom_forms_collection

logger = logging.getLogger(__name__)


def template_field_names(kind: str) -> Dict[str, str]:
    """Document attributes holding a custom form's templates for a notification kind"""
    base = "mail_" + kind.replace("-", "_")
    return {"text": f"{base}_text", "html": f"{base}_html"}


class CustomFormStore:
    """Custom subscription forms whose mail templates replace the built-in ones"""

    def __init__(self, collection=None):
        self._collection = collection

    @property
    def collection(self):
        return self._collection if self._collection is not None else get_custom_forms_collection()

    async def resolve_override(self, form_id: str, kind: str) -> Optional[Dict[str, str]]:
        """
        {"text", "html"} sources of the form's templates for ``kind``, or None
        when the form does not customise this kind.
        Raises TemplateOverrideError when the form cannot be loaded.
        """
        query = {"_id": ObjectId(form_id)} if ObjectId.is_valid(form_id) else {"id": form_id}
        try:
            form = await self.collection.find_one(query)
        except PyMongoError as e:
            raise TemplateOverrideError(f"Cannot load custom form {form_id}: {e}") from e

        if not form:
            raise TemplateOverrideError(f"Custom form {form_id} not found")

        names = template_field_names(kind)
        text = form.get(names["text"])
        html = form.get(names["html"])
        if not text and not html:
            return None
        if not text or not html:
            raise TemplateOverrideError(f"Custom form {form_id} has only one of the {kind} templates")

        logger.debug(f"Using custom {kind} templates of form {form_id}")
        return {"text": text, "html": html}


custom_form_store = CustomFormStore()
