"""
GraphQL query definitions for the Shopify Admin API.

All list queries take ``$first``/``$after`` and return ``pageInfo`` so they
can be paged with the same cursor loop.
"""

PRODUCTS_QUERY = """
query GetProducts($first: Int!, $after: String) {
  products(first: $first, after: $after) {
    edges {
      cursor
      node {
        id
        title
        descriptionHtml
        productType
        tags
        status
        variants(first: 100) {
          edges {
            node {
              id
              title
              sku
              price
              compareAtPrice
              inventoryQuantity
              inventoryItem {
                measurement {
                  weight {
                    unit
                    value
                  }
                }
              }
              selectedOptions {
                name
                value
              }
            }
          }
        }
        images(first: 20) {
          edges {
            node {
              url
              altText
            }
          }
        }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

PRODUCT_COUNT_QUERY = """
query ProductCount {
  productsCount {
    count
  }
}
"""

COLLECTIONS_QUERY = """
query GetCollections($first: Int!, $after: String) {
  collections(first: $first, after: $after) {
    edges {
      cursor
      node {
        id
        title
        descriptionHtml
        products(first: 250) {
          edges {
            node {
              id
            }
          }
        }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

COLLECTION_COUNT_QUERY = """
query CollectionCount {
  collectionsCount {
    count
  }
}
"""

ORDERS_QUERY = """
query GetOrders($first: Int!, $after: String) {
  orders(first: $first, after: $after) {
    edges {
      cursor
      node {
        id
        name
        createdAt
        displayFinancialStatus
        displayFulfillmentStatus
        discountCodes
        customer {
          id
          email
          firstName
          lastName
          phone
        }
        shippingAddress {
          name
          phone
          address1
          address2
          city
          province
          zip
          country
        }
        currentTotalPriceSet { shopMoney { amount } }
        currentSubtotalPriceSet { shopMoney { amount } }
        totalShippingPriceSet { shopMoney { amount } }
        currentTotalTaxSet { shopMoney { amount } }
        currentTotalDiscountsSet { shopMoney { amount } }
        lineItems(first: 50) {
          edges {
            node {
              title
              quantity
              product { id }
              discountedUnitPriceSet { shopMoney { amount } }
            }
          }
        }
        paymentGatewayNames
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

ORDER_COUNT_QUERY = """
query OrderCount {
  ordersCount {
    count
  }
}
"""

CUSTOMERS_QUERY = """
query GetCustomers($first: Int!, $after: String) {
  customers(first: $first, after: $after) {
    edges {
      cursor
      node {
        id
        firstName
        lastName
        email
        phone
        numberOfOrders
        amountSpent { amount }
        tags
        addressesV2(first: 10) {
          edges {
            node {
              name
              phone
              address1
              address2
              city
              province
              zip
              country
            }
          }
        }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

CUSTOMER_COUNT_QUERY = """
query CustomerCount {
  customersCount {
    count
  }
}
"""

DISCOUNT_FIELDS = """
title
status
startsAt
endsAt
usageLimit
asyncUsageCount
codes(first: 1) {
  edges {
    node { code }
  }
}
minimumRequirement {
  ... on DiscountMinimumSubtotal {
    __typename
    greaterThanOrEqualToSubtotal { amount }
  }
}
"""

DISCOUNTS_QUERY = """
query GetDiscounts($first: Int!, $after: String) {
  discountNodes(first: $first, after: $after) {
    edges {
      cursor
      node {
        id
        discount {
          __typename
          ... on DiscountCodeBasic {
            %(fields)s
            customerGets {
              value {
                ... on DiscountPercentage {
                  __typename
                  percentage
                }
                ... on DiscountAmount {
                  __typename
                  amount { amount }
                }
              }
            }
          }
          ... on DiscountCodeFreeShipping {
            %(fields)s
          }
        }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
""" % {"fields": DISCOUNT_FIELDS}

# discountNodes has no count field; page through IDs only
DISCOUNT_IDS_QUERY = """
query DiscountIds($first: Int!, $after: String) {
  discountNodes(first: $first, after: $after) {
    edges {
      node { id }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""
