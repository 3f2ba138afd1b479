# stdlib
import io
import os
from pathlib import Path
from typing import Optional, Tuple, Union
# thirdpartylib
import torch
# projectlib
from annual_forecasting.data.schemas import ModelFamilyName
from annual_forecasting.models.families import CompiledModel, get_family
from annual_forecasting.training.session import Metadata
from annual_forecasting.utils.logging import Logger
from annual_forecasting.utils.paths import validate_address
from annual_forecasting.utils.typing import Address

class ModelStore(object):
    """
    One save slot per model name: torch weights plus a metadata JSON.

    Files are ``<name>_model_state_dict.pth`` and
    ``<name>_metadata.json`` under ``directory``. Saves are written to
    temporary files and moved into place only once both are complete,
    so a failing save never damages the previously stored pair.

    Parameters
    ----------
    directory : Address
        Folder holding the slot; created if missing.
    name : Union[str, ModelFamilyName]
        Slot name. A family is stored under its short alias
        (``lstm`` or ``mlp``).
    logger : Optional[Logger], default None
        Receives save/load/delete messages and errors.
    """

    def __init__(
            self,
            directory: Address,
            name: Union[str, ModelFamilyName],
            *,
            logger: Optional[Logger] = None,
        ) -> None:
        self.directory = validate_address(directory, mkdir=True)
        if isinstance(name, ModelFamilyName):
            name = name.short_name
        self.name = name
        self.log = logger if logger is not None else Logger()

    @property
    def weights_path(self) -> Path:
        return self.directory / f"{self.name}_model_state_dict.pth"

    @property
    def metadata_path(self) -> Path:
        return self.directory / f"{self.name}_metadata.json"

    def exists(self) -> bool:
        return self.weights_path.is_file() and self.metadata_path.is_file()

    def save(self, model: CompiledModel, metadata: Metadata) -> None:
        """
        Persist weights and metadata, replacing any earlier save.

        Raises
        ------
        OSError, RuntimeError
            Propagated after logging; the previous save is untouched.
        """
        weights_tmp = self.weights_path.with_suffix(".pth.tmp")
        metadata_tmp = self.metadata_path.with_suffix(".json.tmp")
        weights_bak = self.weights_path.with_suffix(".pth.bak")
        had_weights = self.weights_path.is_file()
        weights_bak.unlink(missing_ok=True)
        try:
            torch.save(model.module.state_dict(), weights_tmp)
            metadata_tmp.write_text(metadata.to_json(), encoding="utf-8")
            if had_weights:
                os.replace(self.weights_path, weights_bak)
            os.replace(weights_tmp, self.weights_path)
            os.replace(metadata_tmp, self.metadata_path)
        except Exception as exc:
            self.log(f"Error saving {self.name} model: {exc}", verbosity=0)
            # Put the previous weights back so they still match the metadata
            if weights_bak.is_file():
                os.replace(weights_bak, self.weights_path)
            elif not had_weights:
                self.weights_path.unlink(missing_ok=True)
            for tmp in (weights_tmp, metadata_tmp):
                tmp.unlink(missing_ok=True)
            raise
        weights_bak.unlink(missing_ok=True)
        self.log(
            f"Saved {self.name} model state_dict to: {self.weights_path}",
            verbosity=1,
        )

    def load(self) -> Optional[Tuple[CompiledModel, Metadata]]:
        """
        Restore the stored model and metadata.

        The architecture is rebuilt from the stored hyperparameters and
        the weights are loaded into it.

        Returns
        -------
        Optional[Tuple[CompiledModel, Metadata]]
            None if nothing has been saved in this slot.
        """
        if not self.exists():
            self.log(f"No saved {self.name} model in {self.directory}.", 1)
            return None
        try:
            metadata = Metadata.from_json(
                self.metadata_path.read_text(encoding="utf-8")
            )
            family = get_family(metadata.model_family)
            model = family.build(
                metadata.lookback,
                len(metadata.features),
                metadata.hyperparameters,
            )
            state = torch.load(self.weights_path, weights_only=True)
            model.module.load_state_dict(state)
        except Exception as exc:
            self.log(f"Error loading {self.name} model: {exc}", verbosity=0)
            raise
        self.log(f"Loaded {self.name} model from: {self.weights_path}", 1)
        return model, metadata

    def delete(self) -> bool:
        """Remove the stored pair; returns False if nothing was stored."""
        removed = False
        for path in (self.weights_path, self.metadata_path):
            if path.is_file():
                path.unlink()
                removed = True
        if removed:
            self.log(f"Deleted saved {self.name} model.", 1)
        return removed

    def export(
            self,
            model: CompiledModel,
            metadata: Metadata,
        ) -> Tuple[bytes, str]:
        """Serialize weights to bytes and metadata to a JSON document."""
        buffer = io.BytesIO()
        torch.save(model.module.state_dict(), buffer)
        return buffer.getvalue(), metadata.to_json()
