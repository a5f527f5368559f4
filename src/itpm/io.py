import tempfile, json, os
from typing import Union, Any
from pathlib import Path
from itpm.recovery import FileOperationError, FatalError
from itpm.logs import get_logger

log = get_logger("io")

DATA_JSON = 0
DATA_TEXT = 1
DATA_BYTES = 2

def _cleanup(temp_path):
    if temp_path is not None and os.path.exists(temp_path):
        try:
            os.unlink(temp_path)
            log.debug(f"Cleaned up temporary file: {temp_path}")
        except OSError as cleanup_error:
            log.warning(f"Could not clean up temp file {temp_path}: {cleanup_error}")

def _create_dirs(file_path : Path):
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
    except (OSError, PermissionError) as e:
        error_msg = f"Cannot create directory {file_path.parent}: {e}"
        log.error(error_msg)
        raise FileOperationError(error_msg) from e

def atomic_write(data_type : int, file_path : Union[Path, str], data : Any, create_dirs : bool = False):
    """
    Serialize and save data to a file using atomic updates.

    The data is written to a temporary file beside the target and moved into
    place with ``os.replace``, so readers see either the old or the new file.
    """
    file_path = Path(file_path)
    temp_path = None

    try:
        if create_dirs:
            _create_dirs(file_path)

        mode = 'wb' if data_type == DATA_BYTES else 'w'
        encoding = None if data_type == DATA_BYTES else 'utf-8'
        with tempfile.NamedTemporaryFile(mode=mode, encoding=encoding, dir=file_path.parent, prefix=f".{file_path.name}.", suffix='.tmp', delete=False) as temp_file:
            temp_path = temp_file.name
            if data_type == DATA_JSON:
                json.dump(data, temp_file, indent=2, ensure_ascii=False)
            elif data_type in (DATA_TEXT, DATA_BYTES):
                temp_file.write(data)
            else:
                raise FatalError("Unsupported Data Format")
            temp_file.flush()
            os.fsync(temp_file.fileno())

        os.replace(temp_path, file_path)
        log.debug(f"Successfully saved file: {file_path}")
        return True

    except FatalError:
        _cleanup(temp_path)
        raise

    except (TypeError, ValueError) as e:
        _cleanup(temp_path)
        # FATAL ERROR: Data cannot be serialized
        error_msg = (f"Data serialization failed for {file_path}. "
                    f"In-memory data may be corrupt or contain non-serializable types: {e}")
        log.critical(error_msg)
        raise FatalError(error_msg) from e

    except (IOError, OSError, PermissionError) as e:
        _cleanup(temp_path)
        # RECOVERABLE ERROR: I/O issues
        error_msg = f"I/O error saving file {file_path}: {e}"
        log.error(error_msg)
        raise FileOperationError(error_msg) from e

def read_text_file(file_path : Union[Path, str]) -> Union[None, str]:
    """
    Read a UTF-8 text file.

    Returns:
        The file contents, or None if the file doesn't exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        return None

    try:
        return file_path.read_text(encoding='utf-8')
    except UnicodeDecodeError as e:
        raise FileOperationError(f"File {file_path} is not valid UTF-8 text: {e}") from e
    except (IOError, OSError, PermissionError) as e:
        # I/O errors are recoverable
        raise FileOperationError(f"Failed to read file {file_path}: {e}") from e
