import json
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from hotoken_reservation.schemas import SaleState
from mcp.server.fastmcp.utilities.logging import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


def load_state(state_file: PathLike) -> Optional[SaleState]:
    """
    Loads a persisted sale state from a JSON file.

    Args:
        state_file: Path of the JSON file written by save_state.

    Returns:
        The validated SaleState, or None if the file does not exist.

    Raises:
        ValueError: If the file exists but does not hold a valid sale state.
    """
    path = Path(state_file)
    if not path.is_file():
        logger.info(f"No persisted sale state at {path}. Starting from a fresh deployment.")
        return None

    try:
        with open(path, "r") as f:
            state = SaleState.model_validate(json.load(f))
    except json.JSONDecodeError as e:
        logger.error(f"Error decoding JSON from state file: {path}")
        raise ValueError(f"State file {path} is not valid JSON: {e}")
    except ValidationError as e:
        logger.error(f"Invalid sale state in file {path}: {e}")
        raise ValueError(f"State file {path} does not hold a valid sale state: {e}")

    logger.info(f"Loaded sale state from {path.resolve()}: owner={state.owner}, sold={state.token_sold}")
    return state


def save_state(state: SaleState, state_file: PathLike) -> bool:
    """Writes the sale state to a JSON file, replacing it atomically."""
    path = Path(state_file)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w") as f:
            json.dump(state.model_dump(mode="json"), f, indent=4)
        tmp_path.replace(path)
        logger.debug(f"Saved sale state to {path}")
        return True
    except OSError as e:
        logger.error(f"Error saving sale state to {path}: {e}")
        return False
