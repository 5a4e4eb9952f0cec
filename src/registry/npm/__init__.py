"""npm registry metadata and tarball clients."""
