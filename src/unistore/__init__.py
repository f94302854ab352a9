"""unistore: departments, professors and students in one JSON document.

Layout:
    data/
    ├── university.json                # {"departments": {}, "professors": {}, "students": {}}
    └── backups/
        └── backup_2026-10-18T09-30-00-123456Z.json   # full snapshot before each write

Every operation reads the whole document, mutates it in memory and writes it
back. There is no locking; serialize calls yourself if several writers share
a file.
"""
