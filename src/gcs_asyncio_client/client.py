from .objects import _ObjectOperations


class GCSClient(_ObjectOperations):
    pass
