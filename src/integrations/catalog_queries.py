"""
GraphQL query templates for the Red Hat Container Catalog API.

Resolution is a three-step workflow:
find_repositories -> find_repository_images_by_registry_path ->
find_image_vulnerabilities. The image listing's `_id` (NOT
`docker_image_id`) is the identifier accepted by the vulnerability query.
"""

FIND_REPOSITORIES = """
query FindRepositories($repository: String!) {
  find_repositories(filter: { repository: { eq: $repository } }) {
    data {
      _id
      registry
      repository
      published
    }
    total
  }
}
"""

FIND_REPOSITORY_IMAGES = """
query FindRepositoryImages(
  $registry: String!,
  $repository: String!,
  $page: Int,
  $page_size: Int,
  $architecture: String
) {
  find_repository_images_by_registry_path(
    registry: $registry,
    repository: $repository,
    page: $page,
    page_size: $page_size,
    filter: { architecture: { eq: $architecture } }
  ) {
    data {
      _id
      architecture
      docker_image_id
      creation_date
      repositories {
        tags {
          name
        }
      }
    }
    page
    page_size
    total
  }
}
"""

FIND_IMAGE_VULNERABILITIES = """
query FindImageVulnerabilities($id: String!, $page: Int, $page_size: Int) {
  find_image_vulnerabilities(id: $id, page: $page, page_size: $page_size) {
    data {
      cve_id
      severity
      advisory_id
      public_date
      affected_packages {
        name
      }
    }
    page
    page_size
    total
  }
}
"""
