class StorageError(Exception):
    pass


class RunNotFoundError(StorageError):
    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"Run not found: {run_id}")
