"""
Local file store for payment proofs and expense receipts.

The finance services only persist and compare the opaque URL returned by
``store_file``; swapping this class for an object-storage client only needs
the same two methods.
"""
import os
import uuid

from flask import current_app
from werkzeug.utils import secure_filename

from services.exceptions import ValidationError


class LocalFileStore:

    def __init__(self, root, url_prefix='/uploads', allowed_extensions=None):
        self.root = root
        self.url_prefix = url_prefix.rstrip('/')
        self.allowed_extensions = {e.lower() for e in (allowed_extensions or ())}

    @classmethod
    def from_app(cls, app=None):
        app = app or current_app
        return cls(
            app.config['UPLOAD_FOLDER'],
            app.config.get('UPLOAD_URL_PREFIX', '/uploads'),
            app.config.get('ALLOWED_UPLOAD_EXTENSIONS'),
        )

    def _extension(self, filename):
        if '.' not in filename:
            return ''
        return filename.rsplit('.', 1)[1].lower()

    def store_file(self, data, filename, folder='misc'):
        """Write *data* under ``<root>/<folder>/`` and return its public URL."""
        safe_name = secure_filename(filename or '')
        ext = self._extension(safe_name)
        if self.allowed_extensions and ext not in self.allowed_extensions:
            raise ValidationError(f'File type ".{ext}" is not allowed', field='file')
        if not data:
            raise ValidationError('File is empty', field='file')

        folder = secure_filename(folder) or 'misc'
        target_dir = os.path.join(self.root, folder)
        os.makedirs(target_dir, exist_ok=True)

        stored_name = f'{uuid.uuid4().hex}.{ext}' if ext else uuid.uuid4().hex
        with open(os.path.join(target_dir, stored_name), 'wb') as fh:
            fh.write(data)
        return f'{self.url_prefix}/{folder}/{stored_name}'

    def delete_file(self, url):
        """Remove a file previously returned by ``store_file``; unknown URLs are ignored."""
        if not url or not url.startswith(self.url_prefix + '/'):
            return False
        relative = url[len(self.url_prefix) + 1:]
        path = os.path.normpath(os.path.join(self.root, relative))
        if not path.startswith(os.path.normpath(self.root) + os.sep):
            return False
        if os.path.exists(path):
            os.remove(path)
            return True
        return False
