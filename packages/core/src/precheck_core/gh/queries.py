"""GraphQL documents sent to the GitHub API.

All values are passed as variables; nothing is interpolated into the query
text.
"""

CLOSING_ISSUES_QUERY = """
query closingIssues($owner: String!, $repo: String!, $pr_number: Int!) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $pr_number) {
      closingIssuesReferences(first: 100) {
        edges {
          node {
            number
            title
            url
            body
            repository {
              name
              owner {
                login
              }
            }
          }
        }
      }
    }
  }
}
"""

CONVERT_TO_DRAFT_MUTATION = """
mutation convertToDraft($pullRequestId: ID!) {
  convertPullRequestToDraft(input: {pullRequestId: $pullRequestId}) {
    pullRequest {
      id
      number
      isDraft
      title
    }
  }
}
"""
